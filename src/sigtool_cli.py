"""
SigTool CLI

Commands:
  keygen            - Generate a named key pair (ecdsa or bls)
  list-keys         - List stored keys
  sign              - Sign a message with a stored key
  verify            - Verify a signature file against a stored key
  aggregate         - Aggregate BLS signature files
  verify-aggregate  - Verify an aggregated BLS signature against stored keys
"""

import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import structlog


EXIT_OK = 0
EXIT_INVALID = 1
EXIT_ERROR = 2


def configure_logging(verbose: bool = False) -> None:
    """Send structlog output to stderr so stdout stays machine-readable."""
    level = logging.DEBUG if verbose else logging.WARNING
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def get_message(args) -> bytes:
    """Message bytes from --message or --file."""
    if args.message is not None:
        return args.message.encode("utf-8")
    return Path(args.file).read_bytes()


def cmd_keygen(args, keystore):
    """Generate and store a key pair."""
    from crypto.scheme import SchemeIdentifier

    scheme = SchemeIdentifier.from_alias(args.scheme)
    record = keystore.generate_key(args.name, scheme)

    label = "ECDSA" if scheme == SchemeIdentifier.ECDSA_SECP256K1 else "BLS"
    print(f"Generated {label} key pair: {record.name}")
    print(f"  Scheme: {record.scheme.value}")
    print(f"  Public Key: {record.public_key}")
    return EXIT_OK


def cmd_list_keys(args, keystore):
    """List stored keys."""
    keys = keystore.list_keys()

    print(f"Found {len(keys)} keys:")
    for key in keys:
        created = datetime.fromtimestamp(key.created_at, tz=timezone.utc).isoformat()
        print(f"- {key.name} ({key.scheme.value}, created: {created})")
    return EXIT_OK


def cmd_sign(args, keystore):
    """Sign a message or file."""
    from crypto.records import save_signature

    message = get_message(args)
    scheme, signature = keystore.sign_with_key(args.key, message)

    if args.output:
        save_signature(args.output, scheme, signature)
        print(f"Signature saved to {args.output}")
    else:
        print(f"Signature: {signature.hex()}")
    return EXIT_OK


def cmd_verify(args, keystore):
    """Verify a signature file."""
    from crypto.records import load_signature

    message = get_message(args)
    scheme, signature = load_signature(args.signature)
    is_valid = keystore.verify_with_key(args.key, message, scheme, signature)

    print(f"Signature verification: {'VALID' if is_valid else 'INVALID'}")
    return EXIT_OK if is_valid else EXIT_INVALID


def cmd_aggregate(args, keystore):
    """Aggregate BLS signature files."""
    from crypto.records import aggregate_signature_files

    aggregate_signature_files(args.signatures, args.output)

    print(f"Aggregated {len(args.signatures)} signatures")
    print(f"Aggregated signature saved to {args.output}")
    return EXIT_OK


def cmd_verify_aggregate(args, keystore):
    """Verify an aggregated BLS signature."""
    from crypto.records import load_signature

    scheme, signature = load_signature(args.signature)

    if args.messages is not None:
        is_valid = keystore.verify_aggregate_with_keys(
            args.keys,
            scheme,
            signature,
            messages=[m.encode("utf-8") for m in args.messages],
        )
    else:
        is_valid = keystore.verify_aggregate_with_keys(
            args.keys,
            scheme,
            signature,
            message=get_message(args),
        )

    print(f"Aggregate signature verification: {'VALID' if is_valid else 'INVALID'}")
    return EXIT_OK if is_valid else EXIT_INVALID


def _comma_list(value: str) -> List[str]:
    items = [item.strip() for item in value.split(",") if item.strip()]
    if not items:
        raise argparse.ArgumentTypeError("expected a comma-separated list")
    return items


def _add_message_args(parser, allow_messages: bool = False):
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("-m", "--message", help="Message (string)")
    group.add_argument("-f", "--file", help="File containing the message")
    if allow_messages:
        group.add_argument(
            "--messages",
            nargs="+",
            help="One message per key, in key order (distinct-message aggregates)",
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sigtool",
        description="SigTool - ECDSA and BLS key management and signatures",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--keystore",
        help="Key store directory (default: $SIGTOOL_KEYSTORE or ~/.sig-tool)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # keygen
    keygen_parser = subparsers.add_parser("keygen", help="Generate a key pair")
    keygen_parser.add_argument("-n", "--name", required=True, help="Name to identify the key")
    keygen_parser.add_argument(
        "-s", "--scheme", default="ecdsa", choices=["ecdsa", "bls"],
        help="Signature scheme to use",
    )
    keygen_parser.add_argument("--force", action="store_true", help="Overwrite an existing key")

    # list-keys
    subparsers.add_parser("list-keys", help="List all saved keys")

    # sign
    sign_parser = subparsers.add_parser("sign", help="Sign a message")
    sign_parser.add_argument("-k", "--key", required=True, help="Key to use for signing")
    _add_message_args(sign_parser)
    sign_parser.add_argument("-o", "--output", help="Output file for the signature")

    # verify
    verify_parser = subparsers.add_parser("verify", help="Verify a signature")
    verify_parser.add_argument("-k", "--key", required=True, help="Key to use for verification")
    verify_parser.add_argument("-s", "--signature", required=True, help="Signature file to verify")
    _add_message_args(verify_parser)

    # aggregate
    aggregate_parser = subparsers.add_parser("aggregate", help="Aggregate BLS signatures")
    aggregate_parser.add_argument(
        "-s", "--signatures", required=True, type=_comma_list,
        help="Signature files to aggregate (comma-separated)",
    )
    aggregate_parser.add_argument("-o", "--output", required=True, help="Output file")

    # verify-aggregate
    verify_agg_parser = subparsers.add_parser(
        "verify-aggregate", help="Verify an aggregated BLS signature"
    )
    verify_agg_parser.add_argument(
        "-k", "--keys", required=True, type=_comma_list,
        help="Keys of the signers (comma-separated)",
    )
    verify_agg_parser.add_argument("-s", "--signature", required=True, help="Aggregated signature file")
    _add_message_args(verify_agg_parser, allow_messages=True)

    return parser


COMMANDS = {
    "keygen": cmd_keygen,
    "list-keys": cmd_list_keys,
    "sign": cmd_sign,
    "verify": cmd_verify,
    "aggregate": cmd_aggregate,
    "verify-aggregate": cmd_verify_aggregate,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_ERROR

    configure_logging(args.verbose)

    from crypto.errors import SigToolError
    from crypto.keys import KeyStore

    try:
        keystore = KeyStore(
            storage_path=args.keystore,
            overwrite=getattr(args, "force", False),
        )
        return COMMANDS[args.command](args, keystore)
    except (SigToolError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
