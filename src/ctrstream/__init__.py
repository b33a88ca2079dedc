"""ctrstream — streaming AES-CTR encryption with openssl-compatible password containers.

Encrypt or decrypt an async stream of arbitrarily-sized byte chunks with AES
in counter mode.  Output bytes never depend on how the input was chunked.
The password variants derive key and IV with PBKDF2 and frame the ciphertext
in the ``Salted__`` header used by ``openssl enc -pbkdf2``.

Example::

    from ctrstream import collect, decrypt_with_password, encrypt_with_password

    blob = await collect(encrypt_with_password(chunks, "1234"))
    plain = await collect(decrypt_with_password(blob, "1234"))
"""

from .cipher import CounterBlockCipher
from .codec import (
    CtrCodec,
    decrypt,
    decrypt_with_password,
    encrypt,
    encrypt_with_password,
)
from .config import Pbkdf2Options
from .crypto import (
    CipherProvider,
    CryptographyProvider,
    DerivedKey,
    derive_key_and_iv,
    derive_key_and_iv_async,
)
from .reader import ChunkReader
from .utils import (
    HEADER_SIZE,
    MAGIC,
    CtrFramingError,
    CtrParameterError,
    CtrProviderError,
    CtrShortReadError,
    CtrStreamError,
    collect,
)

__all__ = [
    "HEADER_SIZE",
    "MAGIC",
    "ChunkReader",
    "CipherProvider",
    "CounterBlockCipher",
    "CryptographyProvider",
    "CtrCodec",
    "CtrFramingError",
    "CtrParameterError",
    "CtrProviderError",
    "CtrShortReadError",
    "CtrStreamError",
    "DerivedKey",
    "Pbkdf2Options",
    "collect",
    "decrypt",
    "decrypt_with_password",
    "derive_key_and_iv",
    "derive_key_and_iv_async",
    "encrypt",
    "encrypt_with_password",
]
