"""
SecurePass - Crypto Self-Tests

Run with: python test_simple.py   (or: pytest)

Covers the generator and the cipher:
- Length and alphabet of generated passwords
- Empty policy rejected
- Character classes all show up over many passwords
- Encrypt/decrypt round trip, wrong key, tampering, garbage input
- scrypt cost limits on what is written and what is accepted
- Per-user key derivation
- Tokens written by the old browser client (OpenSSL "Salted__")
"""

import base64
import hashlib
import importlib
import os
import time

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from securepass import config, crypto
from securepass.crypto import GenerationPolicy
from securepass.errors import DecryptionFailure, EncryptionError, InvalidPolicy

# Cheap scrypt cost so the suite runs fast
FAST_LOG_N = 4


def test_generate_length_and_alphabet():
    """Every character comes from the resolved alphabet."""
    print("Testing Password Generation...")

    policies = [
        GenerationPolicy(),
        GenerationPolicy(length=1),
        GenerationPolicy(length=32, include_symbols=False),
        GenerationPolicy(length=12, include_uppercase=False, include_lowercase=False),
        GenerationPolicy(length=64, include_uppercase=False, include_lowercase=False,
                         include_numbers=False),
    ]
    for policy in policies:
        alphabet = crypto.resolve_alphabet(policy)
        for _ in range(50):
            pwd = crypto.generate_password(policy)
            assert len(pwd) == policy.length, "Should generate requested length"
            assert all(c in alphabet for c in pwd), "Should only use enabled classes"

    assert len(crypto.generate_password()) == 16, "Default length is 16"
    print("  [OK] Length and alphabet respected")


def test_generate_uppercase_only():
    pwd = crypto.generate_password(GenerationPolicy(
        length=8, include_uppercase=True, include_lowercase=False,
        include_numbers=False, include_symbols=False))
    assert len(pwd) == 8
    assert all('A' <= c <= 'Z' for c in pwd), "Should be A-Z only"
    print("  [OK] Uppercase-only policy works")


def test_alphabet_order_and_classes():
    assert crypto.resolve_alphabet(GenerationPolicy()) == (
        "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
        "abcdefghijklmnopqrstuvwxyz"
        "0123456789"
        "!@#$%^&*()_+-=[]{}|;:,.<>?"
    )
    assert len(crypto.SYMBOLS) == 26
    assert crypto.resolve_alphabet(GenerationPolicy(
        include_uppercase=False, include_numbers=False)) == crypto.LOWERCASE + crypto.SYMBOLS


def test_empty_policy_rejected():
    """All classes off must fail the same way every time."""
    print("Testing Invalid Policies...")
    empty = GenerationPolicy(length=10, include_uppercase=False, include_lowercase=False,
                             include_numbers=False, include_symbols=False)
    for _ in range(3):
        try:
            crypto.generate_password(empty)
            assert False, "Empty alphabet should be rejected"
        except InvalidPolicy:
            pass

    for bad_length in (0, -5):
        try:
            crypto.generate_password(GenerationPolicy(length=bad_length))
            assert False, "Non-positive length should be rejected"
        except InvalidPolicy:
            pass

    # InvalidPolicy is also a ValueError
    try:
        crypto.resolve_alphabet(empty)
        assert False
    except ValueError:
        pass
    print("  [OK] Invalid policies rejected")


def test_class_distribution():
    """10,000 passwords of 16 chars: each class near its share of the alphabet."""
    print("Testing Character Class Distribution...")
    policy = GenerationPolicy(length=16)
    counts = {'upper': 0, 'lower': 0, 'number': 0, 'symbol': 0}
    for _ in range(10000):
        for c in crypto.generate_password(policy):
            if c in crypto.UPPERCASE:
                counts['upper'] += 1
            elif c in crypto.LOWERCASE:
                counts['lower'] += 1
            elif c in crypto.NUMBERS:
                counts['number'] += 1
            else:
                counts['symbol'] += 1

    total = sum(counts.values())
    assert total == 160000
    expected = {'upper': 26 / 88, 'lower': 26 / 88, 'number': 10 / 88, 'symbol': 26 / 88}
    for name, share in expected.items():
        observed = counts[name] / total
        assert abs(observed - share) < 0.02, f"{name} share {observed:.3f}, expected {share:.3f}"
    print(f"  [OK] Class counts: {counts}")


def test_encryption_round_trip():
    """decrypt(encrypt(P, K), K) == P."""
    print("Testing Encryption...")

    token = crypto.encrypt_password("Tr0ub4dor&3", "user-123", log_n=FAST_LOG_N)
    assert crypto.decrypt_password(token, "user-123") == "Tr0ub4dor&3"

    for plaintext in ["", "a", "pässwörd ✓ 密码", "x" * 1000, crypto.SYMBOLS]:
        token = crypto.encrypt_password(plaintext, "some-key", log_n=FAST_LOG_N)
        assert crypto.decrypt_password(token, "some-key") == plaintext

    # Fresh salt and nonce every time
    t1 = crypto.encrypt_password("same", "k", log_n=FAST_LOG_N)
    t2 = crypto.encrypt_password("same", "k", log_n=FAST_LOG_N)
    assert t1 != t2, "Tokens should be randomized"
    print("  [OK] Round trip works")


def test_token_carries_kdf_params():
    token = crypto.encrypt_password("secret", "k", log_n=FAST_LOG_N)
    raw = base64.urlsafe_b64decode(token)
    assert raw[0] == crypto.TOKEN_VERSION
    assert raw[1] == FAST_LOG_N
    assert len(raw) == crypto.MIN_TOKEN_SIZE + len("secret")


def test_wrong_key_rejected():
    print("Testing Key Sensitivity...")
    token = crypto.encrypt_password("Tr0ub4dor&3", "user-123", log_n=FAST_LOG_N)
    for wrong in ("user-124", "USER-123", "user-123 "):
        try:
            crypto.decrypt_password(token, wrong)
            assert False, "Wrong key should fail"
        except DecryptionFailure:
            pass
    print("  [OK] Wrong key detection works")


def test_tampering_rejected():
    print("Testing Tamper Detection...")
    token = crypto.encrypt_password("my_secret_password", "k", log_n=FAST_LOG_N)
    raw = bytearray(base64.urlsafe_b64decode(token))

    # Flip a ciphertext bit, then a header bit (KDF cost)
    for index in (len(raw) - 1, 1):
        tampered = bytearray(raw)
        tampered[index] ^= 1
        try:
            crypto.decrypt_password(base64.urlsafe_b64encode(bytes(tampered)).decode(), "k")
            assert False, "Should have detected tampering"
        except DecryptionFailure:
            pass
    print("  [OK] Tampering detection works")


def test_malformed_tokens_rejected():
    short = base64.urlsafe_b64encode(b"\x01\x04\x08\x01" + b"\x00" * 10).decode()
    bad_version = base64.urlsafe_b64encode(b"\x07\x04\x08\x01" + b"\x00" * 60).decode()
    huge_cost = base64.urlsafe_b64encode(b"\x01\x40\x08\x01" + b"\x00" * 60).decode()
    for token in ["", "not base64!", "abc", "ünïcode", short, bad_version, huge_cost]:
        try:
            crypto.decrypt_password(token, "k")
            assert False, f"Malformed token {token!r} should fail"
        except DecryptionFailure:
            pass
    print("  [OK] Malformed tokens rejected")


def test_derive_user_key():
    print("Testing Per-User Key Derivation...")
    # No secret: identifier is the key
    assert crypto.derive_user_key("user-123") == "user-123"
    assert crypto.derive_user_key("user-123", "") == "user-123"

    k1 = crypto.derive_user_key("user-123", "app-secret")
    k2 = crypto.derive_user_key("user-123", "app-secret")
    k3 = crypto.derive_user_key("user-456", "app-secret")
    k4 = crypto.derive_user_key("user-123", "other-secret")
    assert k1 == k2, "Should be deterministic"
    assert len(bytes.fromhex(k1)) == 32, "Should be 32 bytes hex"
    assert len({k1, k3, k4}) == 3, "User and secret both change the key"
    print("  [OK] Per-user keys work")


def _legacy_encrypt(plaintext: str, key: str, salt: bytes) -> str:
    """Build a token the way the browser client (CryptoJS/OpenSSL) wrote them."""
    password = key.encode('utf-8')
    derived, block = b"", b""
    while len(derived) < 48:
        block = hashlib.md5(block + password + salt).digest()
        derived += block
    padder = padding.PKCS7(128).padder()
    padded = padder.update(plaintext.encode('utf-8')) + padder.finalize()
    encryptor = Cipher(algorithms.AES(derived[:32]), modes.CBC(derived[32:48])).encryptor()
    body = encryptor.update(padded) + encryptor.finalize()
    return base64.b64encode(b"Salted__" + salt + body).decode('ascii')


def test_legacy_tokens():
    print("Testing Legacy Tokens...")
    token = _legacy_encrypt("Tr0ub4dor&3", "user-123", os.urandom(8))
    assert token.startswith(crypto.LEGACY_PREFIX)
    assert crypto.decrypt_password(token, "user-123") == "Tr0ub4dor&3"
    assert crypto.decrypt_legacy(token, "user-123") == "Tr0ub4dor&3"

    # CBC has no tag: a wrong key fails padding/UTF-8 or at least never yields P
    try:
        result = crypto.decrypt_password(token, "user-999")
        assert result != "Tr0ub4dor&3", "Wrong key must not recover plaintext"
    except DecryptionFailure:
        pass

    truncated = base64.b64encode(base64.b64decode(token)[:-3]).decode()
    for bad in (truncated, crypto.LEGACY_PREFIX + "!!!"):
        try:
            crypto.decrypt_password(bad, "user-123")
            assert False, "Malformed legacy token should fail"
        except DecryptionFailure:
            pass
    print("  [OK] Legacy tokens decrypt")


def test_account_password_hash():
    salt = os.urandom(16)
    h1 = crypto.hash_account_password("hunter22", salt, FAST_LOG_N)
    h2 = crypto.hash_account_password("hunter22", salt, FAST_LOG_N)
    h3 = crypto.hash_account_password("hunter23", salt, FAST_LOG_N)
    assert len(h1) == 32
    assert crypto.constant_compare(h1, h2)
    assert not crypto.constant_compare(h1, h3)


def test_scrypt_cost_bounds():
    """Costs at the edges round-trip; anything decrypt would refuse is refused up front."""
    print("Testing scrypt Cost Bounds...")
    assert crypto.MAX_LOG_N == 16, "64 MiB at r=8, p=1"
    for log_n in (1, crypto.MAX_LOG_N):
        token = crypto.encrypt_password("edge", "k", log_n=log_n)
        assert base64.urlsafe_b64decode(token)[1] == log_n
        assert crypto.decrypt_password(token, "k") == "edge"

    for log_n in (0, -1, crypto.MAX_LOG_N + 1, 21, 256, 4.0, True):
        try:
            crypto.encrypt_password("x", "k", log_n=log_n)
            assert False, f"log_n={log_n!r} should be rejected"
        except EncryptionError:
            pass
        try:
            crypto.hash_account_password("x", os.urandom(16), log_n)
            assert False, f"log_n={log_n!r} should be rejected for accounts"
        except EncryptionError:
            pass
    print("  [OK] Out-of-range costs rejected")


def test_scrypt_cost_from_environment():
    print("Testing scrypt Cost Settings...")
    assert config.scrypt_params_valid(config.SCRYPT_LOG_N, config.SCRYPT_R, config.SCRYPT_P)
    assert config.scrypt_params_valid(config.ACCOUNT_SCRYPT_LOG_N, config.SCRYPT_R, config.SCRYPT_P)

    for name in ("SECUREPASS_SCRYPT_LOG_N", "SECUREPASS_ACCOUNT_SCRYPT_LOG_N"):
        for raw in ("21", "0", "fifteen"):
            saved = os.environ.get(name)
            os.environ[name] = raw
            try:
                importlib.reload(config)
                assert False, f"{name}={raw} should be rejected at load"
            except ValueError as e:
                assert name in str(e)
            finally:
                if saved is None:
                    del os.environ[name]
                else:
                    os.environ[name] = saved
                importlib.reload(config)
    print("  [OK] Bad cost settings rejected at load")


def test_costly_header_rejected_quickly():
    """A forged header asking for a huge scrypt run fails before any key derivation."""
    print("Testing Costly Headers...")
    for header in ([1, 20, 16, 16], [1, 17, 8, 1], [1, 16, 8, 2], [1, 16, 255, 255], [1, 255, 255, 255]):
        token = base64.urlsafe_b64encode(bytes(header) + os.urandom(48)).decode()
        started = time.monotonic()
        try:
            crypto.decrypt_password(token, "k")
            assert False, f"Header {header} should be rejected"
        except DecryptionFailure:
            pass
        assert time.monotonic() - started < 1.0, f"Header {header} took too long to reject"
    print("  [OK] Costly headers rejected")


def test_unencodable_text_rejected():
    print("Testing Unencodable Text...")
    lone_surrogate = "\ud800"
    for plaintext, key in ((lone_surrogate, "k"), ("password", lone_surrogate)):
        try:
            crypto.encrypt_password(plaintext, key, log_n=FAST_LOG_N)
            assert False, "Lone surrogate should be rejected"
        except EncryptionError:
            pass

    token = crypto.encrypt_password("password", "k", log_n=FAST_LOG_N)
    legacy = _legacy_encrypt("password", "k", os.urandom(8))
    for t in (token, legacy):
        try:
            crypto.decrypt_password(t, lone_surrogate)
            assert False, "Lone surrogate key should fail to decrypt"
        except DecryptionFailure:
            pass

    try:
        crypto.hash_account_password(lone_surrogate, os.urandom(16), FAST_LOG_N)
        assert False, "Lone surrogate account password should be rejected"
    except EncryptionError:
        pass
    print("  [OK] Unencodable text rejected")


def run_all_tests():
    """Run all tests."""
    print("=" * 70)
    print("SecurePass - Crypto Test Suite")
    print("=" * 70)
    print()

    tests = [
        test_generate_length_and_alphabet,
        test_generate_uppercase_only,
        test_alphabet_order_and_classes,
        test_empty_policy_rejected,
        test_class_distribution,
        test_encryption_round_trip,
        test_token_carries_kdf_params,
        test_wrong_key_rejected,
        test_tampering_rejected,
        test_malformed_tokens_rejected,
        test_derive_user_key,
        test_legacy_tokens,
        test_account_password_hash,
        test_scrypt_cost_bounds,
        test_scrypt_cost_from_environment,
        test_costly_header_rejected_quickly,
        test_unencodable_text_rejected,
    ]

    failed = []

    for test in tests:
        try:
            test()
            print()
        except Exception as e:
            print(f"  [FAIL] TEST FAILED: {e}")
            failed.append((test.__name__, e))
            print()

    print("=" * 70)
    if not failed:
        print("[OK] ALL TESTS PASSED!")
    else:
        print(f"[FAIL] {len(failed)} TESTS FAILED:")
        for name, error in failed:
            print(f"  - {name}: {error}")
    print("=" * 70)

    return len(failed) == 0


if __name__ == "__main__":
    import sys
    success = run_all_tests()
    sys.exit(0 if success else 1)
