"""Password-based round-trip and openssl compatibility tests."""

from __future__ import annotations

import asyncio

import pytest

from ctrstream import (
    MAGIC,
    CtrFramingError,
    CtrParameterError,
    CtrProviderError,
    Pbkdf2Options,
    decrypt_with_password,
    encrypt_with_password,
)

from helpers import PLAINTEXT, SALTED_128, SALTED_256, split_chunks

OPENSSL_128 = Pbkdf2Options(iterations=100_000, hash="SHA-256", key_bits=128)
OPENSSL_256 = Pbkdf2Options(iterations=100_000, hash="SHA-256", key_bits=256)
FAST = Pbkdf2Options(iterations=1_000)


class TestOpensslCompatibility:
    def test_decrypt_128(self, drain) -> None:
        assert drain(decrypt_with_password([SALTED_128], "1234", OPENSSL_128)) == PLAINTEXT

    def test_decrypt_256(self, drain) -> None:
        assert drain(decrypt_with_password([SALTED_256], "1234", OPENSSL_256)) == PLAINTEXT

    def test_encrypt_reproduces_openssl_with_same_salt(self, drain) -> None:
        salt = SALTED_128[8:16]
        blob = drain(encrypt_with_password(PLAINTEXT, "1234", OPENSSL_128, salt=salt))
        assert blob == SALTED_128

    def test_decrypt_header_split_across_chunks(self, drain) -> None:
        chunks = split_chunks(SALTED_256, [3, 5, 7])
        assert drain(decrypt_with_password(chunks, "1234", OPENSSL_256)) == PLAINTEXT


class TestPasswordRoundTrip:
    CHUNKS = [
        b"abcdefghijklmnopqrstuvwxyzabcdefghijklmnopqrstuvwxyzabcde",
        b"ABCDEFGHIJKLMNOPQRSTUVWXYZABCDEFGHIJKLMNOPQRSTUVWXYZABCDEFGHIJKLMNOPQRSTUVWXYZABCD",
        b"01234567890123456789012345678901234567890123",
    ]

    def test_round_trip_streamed(self) -> None:
        """Decrypt consumes the encrypt stream directly, without buffering it."""

        async def scenario() -> bytes:
            encrypted = encrypt_with_password(self.CHUNKS, "1234", FAST)
            decrypted = decrypt_with_password(encrypted, "1234", FAST)
            return b"".join([chunk async for chunk in decrypted])

        assert asyncio.run(scenario()) == b"".join(self.CHUNKS)

    @pytest.mark.parametrize("key_bits", [128, 256])
    @pytest.mark.parametrize("hash_name", ["SHA-1", "SHA-512"])
    def test_round_trip_options(self, drain, key_bits: int, hash_name: str) -> None:
        options = Pbkdf2Options(iterations=100, hash=hash_name, key_bits=key_bits)
        data = bytes(range(256)) * 3
        blob = drain(encrypt_with_password(split_chunks(data, [31]), "pw", options))
        assert drain(decrypt_with_password(split_chunks(blob, [9]), "pw", options)) == data

    def test_header_layout(self, drain) -> None:
        salt = bytes.fromhex("0102030405060708")
        blob = drain(encrypt_with_password(b"xyz", "pw", FAST, salt=salt))
        assert blob[:8] == MAGIC
        assert blob[8:16] == salt
        assert len(blob) == 16 + 3

    def test_header_is_first_chunk(self) -> None:
        async def scenario() -> bytes:
            stream = encrypt_with_password(b"payload", "pw", FAST)
            first = await stream.__anext__()
            await stream.aclose()
            return first

        assert asyncio.run(scenario())[:8] == MAGIC

    def test_random_salt_per_call(self, drain) -> None:
        first = drain(encrypt_with_password(b"same", "pw", FAST))
        second = drain(encrypt_with_password(b"same", "pw", FAST))
        assert first[8:16] != second[8:16]

    def test_empty_plaintext(self, drain) -> None:
        blob = drain(encrypt_with_password(b"", "pw", FAST))
        assert len(blob) == 16
        assert drain(decrypt_with_password(blob, "pw", FAST)) == b""

    def test_wrong_password_gives_garbage(self, drain) -> None:
        blob = drain(encrypt_with_password(PLAINTEXT, "right", FAST))
        assert drain(decrypt_with_password(blob, "wrong", FAST)) != PLAINTEXT


class TestMalformedInput:
    @pytest.mark.parametrize("blob", [b"", b"Salted", b"Salted__\x01\x02\x03", SALTED_128[:15]])
    def test_short_header(self, drain, blob: bytes) -> None:
        with pytest.raises(CtrFramingError):
            drain(decrypt_with_password(blob, "1234", FAST))

    def test_bad_magic(self, drain) -> None:
        with pytest.raises(CtrFramingError, match="Invalid magic"):
            drain(decrypt_with_password(b"Peppered" + SALTED_128[8:], "1234", FAST))

    def test_bad_salt_rejected_immediately(self) -> None:
        with pytest.raises(CtrParameterError):
            encrypt_with_password(b"data", "pw", FAST, salt=b"\x00" * 4)

    def test_bad_key_bits_rejected_immediately(self) -> None:
        with pytest.raises(CtrParameterError):
            Pbkdf2Options(key_bits=192)

    def test_unsupported_hash_before_output(self) -> None:
        async def scenario() -> list[bytes]:
            return [c async for c in encrypt_with_password(b"data", "pw", Pbkdf2Options(hash="whirlpool"))]

        with pytest.raises(CtrProviderError):
            asyncio.run(scenario())

    def test_derivation_uses_header_salt(self, drain, fake_provider) -> None:
        salt = b"ABCDEFGH"
        blob = drain(encrypt_with_password(b"data", "pw", FAST, salt=salt, provider=fake_provider))
        assert drain(decrypt_with_password(blob, "pw", FAST, provider=fake_provider)) == b"data"
        assert fake_provider.derive_calls == 2
