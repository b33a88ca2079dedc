#!/usr/bin/env python3
"""Basic usage example for ctrstream.

Encrypts a message delivered in uneven chunks, shows that the ciphertext does
not depend on the chunking, and decrypts it back.
"""

import asyncio

from ctrstream import (
    CtrCodec,
    Pbkdf2Options,
    collect,
    decrypt_with_password,
    derive_key_and_iv,
    encrypt,
    encrypt_with_password,
)


async def chunks_of(data: bytes, size: int):
    for i in range(0, len(data), size):
        yield data[i : i + size]


async def main() -> None:
    secret = b"Attack at dawn. Bring snacks. " * 4
    options = Pbkdf2Options(iterations=100_000, hash="SHA-256", key_bits=256)
    salt = bytes.fromhex("AC2FDA1FA716E4B3")

    # --- Password path (openssl-compatible Salted__ container) ---
    blob = await collect(encrypt_with_password(chunks_of(secret, 7), "1234", options, salt=salt))
    print(f"Container: {len(blob)} bytes, header {blob[:16]!r}")

    recovered = await collect(decrypt_with_password(chunks_of(blob, 5), "1234", options))
    assert recovered == secret, "Round-trip failed!"
    print("Password round-trip successful!")

    # --- Explicit key path, chunking does not matter ---
    key, iv = derive_key_and_iv(salt, "1234", key_bits=256, iterations=100_000)
    print(f"key={key.hex().upper()}\niv ={iv.hex().upper()}")
    one_shot = await collect(encrypt(secret, key, iv))
    tiny_chunks = await collect(encrypt(chunks_of(secret, 3), key, iv))
    assert one_shot == tiny_chunks == blob[16:]
    print("Chunk-boundary independence holds.")


if __name__ == "__main__":
    asyncio.run(main())

    # --- Synchronous convenience wrapper ---
    codec = CtrCodec("correct horse", Pbkdf2Options(iterations=10_000))
    sealed = codec.encrypt_bytes(b"diagnostic payload")
    print(f"Decrypted: {codec.decrypt_bytes(sealed)!r}")
