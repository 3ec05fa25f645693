"""
hashmap CLI — create, verify, fetch and publish signed payloads.

Commands:
  hashmap keygen    - Generate an ed25519 private key
  hashmap pubkey    - Print the public key and endpoint of a private key file
  hashmap endpoint  - Derive the endpoint of a base64 public key
  hashmap generate  - Sign a message into envelope JSON
  hashmap verify    - Validate envelope JSON from a file or stdin
  hashmap get       - Fetch and verify an envelope from a server
  hashmap post      - Publish envelope JSON to a server
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path


def _add_uri_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--uri", help="hashmap server URI (or set HASHMAP_SERVER_URI)")


def _read_key_file(path: str) -> str:
    """Read a base64 private key file. Exits on missing file."""
    key_path = Path(path)
    if not key_path.is_file():
        print(f"Error: Key file not found: {path}", file=sys.stderr)
        sys.exit(1)
    return key_path.read_text().strip()


def _read_input(path: str | None) -> str:
    if not path or path == "-":
        return sys.stdin.read()
    in_path = Path(path)
    if not in_path.is_file():
        print(f"Error: File not found: {path}", file=sys.stderr)
        sys.exit(1)
    return in_path.read_text()


def _make_payload(args: argparse.Namespace, **kwargs):
    from hashmap.config import configure_from_env
    from hashmap.errors import ConfigError
    from hashmap.payload import Payload

    try:
        config = configure_from_env()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    return Payload(uri=getattr(args, "uri", None), config=config, **kwargs)


def cmd_keygen(args: argparse.Namespace) -> None:
    """Generate a private key; write it to a 0600 file or stdout."""
    from hashmap.identity import endpoint_from_public_key, generate_keypair

    pair = generate_keypair()
    # Keep stdout to the bare key when printing it, so it can be redirected
    info = sys.stdout if args.output else sys.stderr
    if args.output:
        out = Path(args.output)
        if out.exists():
            print(f"Error: Refusing to overwrite {out}", file=sys.stderr)
            sys.exit(1)
        out.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(str(out), os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        with os.fdopen(fd, "w") as f:
            f.write(pair.private_key + "\n")
        print(f"Private key -> {out}")
    else:
        print(pair.private_key)
    print(f"  pubkey:   {pair.public_key}", file=info)
    print(f"  endpoint: {endpoint_from_public_key(pair.public_key)}", file=info)


def cmd_pubkey(args: argparse.Namespace) -> None:
    from hashmap.errors import HashmapError
    from hashmap.identity import endpoint_from_public_key, public_key_from_private_key

    try:
        pubkey = public_key_from_private_key(_read_key_file(args.keyfile))
    except HashmapError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"pubkey:   {pubkey}")
    print(f"endpoint: {endpoint_from_public_key(pubkey)}")


def cmd_endpoint(args: argparse.Namespace) -> None:
    from hashmap.errors import HashmapError
    from hashmap.identity import endpoint_from_public_key

    try:
        print(endpoint_from_public_key(args.pubkey))
    except HashmapError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def cmd_generate(args: argparse.Namespace) -> None:
    """Sign a message and print the envelope JSON."""
    from hashmap.errors import HashmapError
    from hashmap.payload import Payload

    key = _read_key_file(args.keyfile)
    p = Payload()
    try:
        print(p.generate(key, args.message, ttl=args.ttl))
    except HashmapError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def cmd_verify(args: argparse.Namespace) -> None:
    """Validate envelope JSON and print what it carries."""
    from hashmap.errors import HashmapError
    from hashmap.payload import Payload

    p = Payload()
    try:
        p.import_json(_read_input(args.path))
    except HashmapError as e:
        print(f"FAIL: {type(e).__name__}: {e}", file=sys.stderr)
        sys.exit(1)

    record = p.get_data()
    print("OK: signature valid")
    print(f"  endpoint:  {p.derive_endpoint()}")
    print(f"  timestamp: {record.timestamp}")
    print(f"  ttl:       {record.ttl}s{' (expired)' if record.is_expired() else ''}")
    print(f"  message:   {p.get_message_bytes().decode('utf-8', errors='replace')}")


def cmd_get(args: argparse.Namespace) -> None:
    """Fetch an envelope by endpoint and print its message."""
    from hashmap.errors import HashmapError

    p = _make_payload(args, endpoint=args.endpoint)
    try:
        envelope = asyncio.run(p.get())
    except HashmapError as e:
        print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(envelope.to_json())
    else:
        print(p.get_message_bytes().decode("utf-8", errors="replace"))


def cmd_post(args: argparse.Namespace) -> None:
    """Validate envelope JSON locally, then publish it."""
    from hashmap.errors import HashmapError

    p = _make_payload(args)
    try:
        p.import_json(_read_input(args.path))
        reply = asyncio.run(p.post())
    except HashmapError as e:
        print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Posted to {p.uri}")
    print(f"  endpoint: {p.derive_endpoint()}")
    if isinstance(reply, dict) and reply:
        for k, v in sorted(reply.items()):
            print(f"  {k}: {v}")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="hashmap",
        description="hashmap — signed, content-addressed payloads.",
    )
    from hashmap import DATA_TTL_MAX, __version__
    parser.add_argument("--version", action="version", version=f"hashmap {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    p_keygen = sub.add_parser("keygen", help="Generate an ed25519 private key")
    p_keygen.add_argument("-o", "--output", help="Write key to file (mode 0600)")

    p_pubkey = sub.add_parser("pubkey", help="Show public key and endpoint of a key file")
    p_pubkey.add_argument("keyfile", help="Path to base64 private key file")

    p_endpoint = sub.add_parser("endpoint", help="Derive endpoint from a public key")
    p_endpoint.add_argument("pubkey", help="Base64 ed25519 public key")

    p_gen = sub.add_parser("generate", help="Sign a message into envelope JSON")
    p_gen.add_argument("keyfile", help="Path to base64 private key file")
    p_gen.add_argument("-m", "--message", default=" ", help="Message (max 512 bytes)")
    p_gen.add_argument("--ttl", type=int, default=None, help=f"Seconds, max {DATA_TTL_MAX}")

    p_verify = sub.add_parser("verify", help="Validate envelope JSON")
    p_verify.add_argument("path", nargs="?", default="-", help="File, or - for stdin")

    p_get = sub.add_parser("get", help="Fetch an envelope by endpoint")
    p_get.add_argument("endpoint", help="Endpoint (base58 multihash)")
    p_get.add_argument("--json", action="store_true", help="Print envelope JSON")
    _add_uri_arg(p_get)

    p_post = sub.add_parser("post", help="Publish envelope JSON")
    p_post.add_argument("path", nargs="?", default="-", help="File, or - for stdin")
    _add_uri_arg(p_post)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        print("hashmap — signed, content-addressed payloads")
        print()
        print("Usage:")
        print("  hashmap keygen -o key.b64")
        print("  hashmap pubkey key.b64")
        print("  hashmap endpoint <pubkey>")
        print("  hashmap generate key.b64 -m 'hello' [--ttl 3600] > envelope.json")
        print("  hashmap verify envelope.json")
        print("  hashmap get <endpoint> --uri https://...")
        print("  hashmap post envelope.json --uri https://...")
        print()
        print("Run 'hashmap <command> --help' for details on any command.")
        sys.exit(0)

    commands = {
        "keygen": cmd_keygen,
        "pubkey": cmd_pubkey,
        "endpoint": cmd_endpoint,
        "generate": cmd_generate,
        "verify": cmd_verify,
        "get": cmd_get,
        "post": cmd_post,
    }

    commands[args.command](args)


if __name__ == "__main__":
    main()
