"""Command-line interface for ctrstream."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import dataclasses
import os
import sys
import time
from collections.abc import AsyncIterator
from typing import BinaryIO

from .codec import decrypt, encrypt
from .config import Pbkdf2Options, get_env_password
from .crypto import KEY_BITS, DerivedKey, derive_key_and_iv_async
from .reader import ChunkReader
from .utils import (
    DEFAULT_CHUNK_SIZE,
    SALT_SIZE,
    CtrParameterError,
    CtrStreamError,
    check_chunk_size,
    iter_fileobj,
    pack_header,
    read_header,
    write_stream,
    write_stream_to_path,
)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ctrstream",
        description="Stream AES-CTR encryption compatible with `openssl enc -pbkdf2`.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="print diagnostics to stderr"
    )

    sub = parser.add_subparsers(dest="command")
    for name, help_text in (
        ("encrypt", "encrypt a stream"),
        ("decrypt", "decrypt a stream"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("-i", "--in", dest="input", default=None, help="input file (default: stdin)")
        cmd.add_argument("-o", "--out", dest="output", default=None, help="output file (default: stdout)")

        # -- explicit key ----------------------------------------------
        cmd.add_argument("-K", "--key", default=None, help="raw key as hex (skips PBKDF2 and the header)")
        cmd.add_argument("--iv", default=None, help="raw IV as hex, required with --key")
        cmd.add_argument("-S", "--salt", default=None, help="salt as hex (8 bytes)")

        # -- password ----------------------------------------------------
        cmd.add_argument(
            "--pass",
            dest="password",
            default=None,
            help="password (default: $CTRSTREAM_PASSWORD or .env)",
        )
        cmd.add_argument("--iter", dest="iterations", type=int, default=None, help="PBKDF2 iterations")
        cmd.add_argument("--md", dest="hash", default=None, help="PBKDF2 hash, e.g. sha256")
        cmd.add_argument("--key-bits", type=int, choices=KEY_BITS, default=None, help="AES key size")
        cmd.add_argument(
            "-p",
            "--print-key",
            action="store_true",
            help="print salt, key and iv to stderr",
        )
        cmd.add_argument(
            "--chunk-size", type=int, default=DEFAULT_CHUNK_SIZE, help="read size in bytes"
        )

    return parser


def _log(msg: str) -> None:
    print(msg, file=sys.stderr)


def _hex(value: str, what: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except ValueError as exc:
        raise CtrParameterError(f"{what} is not valid hex: {value!r}") from exc


def _options(args: argparse.Namespace) -> Pbkdf2Options:
    """Environment defaults overridden by whatever was given on the command line."""
    overrides = {
        field: getattr(args, field)
        for field in ("iterations", "hash", "key_bits")
        if getattr(args, field) is not None
    }
    return dataclasses.replace(Pbkdf2Options.from_env(), **overrides)


def _print_key(salt: bytes | None, key: bytes, iv: bytes) -> None:
    if salt is not None:
        _log(f"salt={salt.hex().upper()}")
    _log(f"key={key.hex().upper()}")
    _log(f"iv ={iv.hex().upper()}")


async def _with_header(header: bytes, stream: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    yield header
    async for chunk in stream:
        yield chunk


async def _derive(salt: bytes, password: str, options: Pbkdf2Options) -> DerivedKey:
    return await derive_key_and_iv_async(
        salt,
        password,
        key_bits=options.key_bits,
        iterations=options.iterations,
        hash=options.hash,
    )


async def _open_stream(
    args: argparse.Namespace, src: BinaryIO, verbose: bool
) -> AsyncIterator[bytes]:
    """Set up the output stream; key derivation and header checks happen here."""
    encrypting = args.command == "encrypt"
    chunks = iter_fileobj(src, args.chunk_size)
    salt = _hex(args.salt, "salt") if args.salt is not None else None

    if args.key is not None:
        if args.iv is None:
            raise CtrParameterError("--iv is required together with --key")
        key = _hex(args.key, "key")
        iv = _hex(args.iv, "iv")
        if verbose:
            _log(f"Mode: explicit key (AES-{len(key) * 8}-CTR, no header)")
        transform = encrypt if encrypting else decrypt
        stream = transform(chunks, key, iv, salt)
        if args.print_key:
            _print_key(salt, key, iv)
        return stream

    password = args.password or get_env_password()
    if password is None:
        raise CtrParameterError("no password (use --pass, $CTRSTREAM_PASSWORD or --key/--iv)")
    options = _options(args)
    if verbose:
        _log(
            f"Mode: password (AES-{options.key_bits}-CTR, PBKDF2-{options.hash}, "
            f"{options.iterations} iterations)"
        )

    if encrypting:
        if salt is None:
            salt = os.urandom(SALT_SIZE)
        header = pack_header(salt)
        key, iv = await _derive(salt, password, options)
        if args.print_key:
            _print_key(salt, key, iv)
        return _with_header(header, encrypt(chunks, key, iv))

    reader = ChunkReader(chunks)
    salt = await read_header(reader)
    key, iv = await _derive(salt, password, options)
    if args.print_key:
        _print_key(salt, key, iv)
    return decrypt(reader, key, iv)


async def _run(args: argparse.Namespace, src: BinaryIO, verbose: bool) -> int:
    stream = await _open_stream(args, src, verbose)
    if args.output:
        return await write_stream_to_path(stream, args.output)
    written = await write_stream(stream, sys.stdout.buffer)
    sys.stdout.buffer.flush()
    return written


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    verbose = args.verbose

    t0 = time.perf_counter()
    try:
        check_chunk_size(args.chunk_size)
        with contextlib.ExitStack() as stack:
            src = (
                stack.enter_context(open(args.input, "rb"))
                if args.input
                else sys.stdin.buffer
            )
            written = asyncio.run(_run(args, src, verbose))
    except (CtrStreamError, OSError) as exc:
        print(f"ctrstream: {exc}", file=sys.stderr)
        sys.exit(1)

    if verbose:
        _log(f"Bytes written: {written}")
        _log(f"Elapsed:       {time.perf_counter() - t0:.2f}s")


if __name__ == "__main__":
    main()
