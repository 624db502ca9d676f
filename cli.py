#!/usr/bin/env python3
"""
Keysplit CLI — 2-of-3 secret sharing with tamper-evident shares.

Usage:
    cli.py split --secret "my key" [-n 3 -k 2] [--output ./shares/]
    cli.py split --file key.txt [--output ./shares/]
    cli.py combine --shares share_device.json share_server.json [--output key.txt]
    cli.py derive --shares share_device.json share_server.json [--output ./shares/]
    cli.py verify --shares share_device.json share_server.json share_recovery.json
"""

import argparse
import json
import os
import sys

from keysplit import manager
from keysplit.config import Config, configure_logging
from keysplit.errors import ShareError


def cmd_split(args):
    """Split a key into three share files."""
    if args.secret is not None:
        secret = args.secret
    elif args.file:
        if not os.path.exists(args.file):
            print(f"Error: file not found: {args.file}", file=sys.stderr)
            return 1
        try:
            with open(args.file, encoding='utf-8') as f:
                secret = f.read().rstrip('\n')
        except (OSError, UnicodeDecodeError) as e:
            print(f"Error: cannot read {args.file}: {e}", file=sys.stderr)
            return 1
    else:
        secret = sys.stdin.read().rstrip('\n')

    if not secret:
        print("Error: empty secret", file=sys.stderr)
        return 1

    try:
        shares = manager.split_key(secret, total_shares=args.shares, threshold=args.threshold)
    except ShareError as e:
        print(f"Split FAILED: {e}", file=sys.stderr)
        return 1

    try:
        paths = manager.save_shares(shares, args.output or '.')
    except OSError as e:
        print(f"Split FAILED: cannot write shares: {e}", file=sys.stderr)
        return 1

    print(f"Split {len(secret.encode('utf-8'))}-byte key into {len(shares)} shares (any 2 recover it)")
    for path in paths:
        print(f"  {path}")

    if args.print_shares:
        print("\nShares:")
        for share in shares:
            print(json.dumps(share))

    return 0


def cmd_combine(args):
    """Recover the key from two or more share files."""
    try:
        shares = manager.load_shares(args.shares)
        secret = manager.combine_shares(shares)
    except (ShareError, OSError) as e:
        print(f"Combine FAILED: {e}", file=sys.stderr)
        return 1

    if args.output:
        try:
            with open(args.output, 'w', encoding='utf-8') as f:
                f.write(secret)
        except OSError as e:
            print(f"Combine FAILED: cannot write {args.output}: {e}", file=sys.stderr)
            return 1
        print(f"Key saved to: {args.output}")
    else:
        print(secret)

    return 0


def cmd_derive(args):
    """Regenerate the missing share from two existing share files."""
    if len(args.shares) != 2:
        print("Error: derive takes exactly two share files", file=sys.stderr)
        return 1

    try:
        share1, share2 = manager.load_shares(args.shares)
        new_share = manager.generate_new_share_from_two(share1, share2)
    except (ShareError, OSError) as e:
        print(f"Derive FAILED: {e}", file=sys.stderr)
        return 1

    try:
        path, = manager.save_shares([new_share], args.output or '.')
    except OSError as e:
        print(f"Derive FAILED: cannot write share: {e}", file=sys.stderr)
        return 1
    print(f"Derived {new_share['type']} share: {path}")
    return 0


def cmd_verify(args):
    """Check share files without combining them."""
    try:
        shares = manager.load_shares(args.shares)
    except (ShareError, OSError) as e:
        print(f"Verify FAILED: {e}", file=sys.stderr)
        return 1

    result = manager.verify_shares(shares)

    print(f"Valid:    {result['valid']}")
    print(f"Shares:   {result['share_count']}")
    print(f"Types:    {', '.join(result['types']) or '-'}")
    print(f"Version:  {result['version']}")

    if result['errors']:
        print("\nErrors:")
        for e in result['errors']:
            print(f"  {e}")

    return 0 if result['valid'] else 1


def build_parser():
    parser = argparse.ArgumentParser(
        prog='keysplit',
        description='Keysplit — split a key into device/server/recovery shares, any 2 of which recover it.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Split a key into ./shares/share_{device,server,recovery}.json
  %(prog)s split --secret "correct horse battery staple" --output ./shares/

  # Recover with any two shares
  %(prog)s combine --shares shares/share_device.json shares/share_recovery.json

  # Lost the device share? Rebuild it from the other two
  %(prog)s derive --shares shares/share_server.json shares/share_recovery.json --output ./shares/

  # Check shares for tampering
  %(prog)s verify --shares shares/*.json
        """
    )
    parser.add_argument('--verbose', '-v', action='count', default=0,
                        help='More logging (-v info, -vv debug)')

    sub = parser.add_subparsers(dest='command', help='Command')

    p_split = sub.add_parser('split', help='Split a key into three shares')
    p_split.add_argument('--secret', '-s', help='Key to split')
    p_split.add_argument('--file', '-f', help='Read the key from a UTF-8 text file')
    p_split.add_argument('--shares', '-n', type=int, default=3, help='Total shares (N, default 3)')
    p_split.add_argument('--threshold', '-k', type=int, default=2, help='Threshold (K, default 2)')
    p_split.add_argument('--output', '-o', help='Output directory (default: current)')
    p_split.add_argument('--print-shares', action='store_true', help='Print shares to stdout')

    p_combine = sub.add_parser('combine', help='Recover the key from shares')
    p_combine.add_argument('--shares', '-s', nargs='+', required=True, help='Share files')
    p_combine.add_argument('--output', '-o', help='Output file (default: print to stdout)')

    p_derive = sub.add_parser('derive', help='Rebuild the missing share from two others')
    p_derive.add_argument('--shares', '-s', nargs='+', required=True, help='Two share files')
    p_derive.add_argument('--output', '-o', help='Output directory (default: current)')

    p_verify = sub.add_parser('verify', help='Check shares without combining')
    p_verify.add_argument('--shares', '-s', nargs='+', required=True, help='Share files')

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    config = Config.from_env()
    level = {0: config.log_level, 1: 'INFO'}.get(args.verbose, 'DEBUG')
    configure_logging(level)

    handlers = {
        'split': cmd_split,
        'combine': cmd_combine,
        'derive': cmd_derive,
        'verify': cmd_verify,
    }

    return handlers[args.command](args)


if __name__ == '__main__':
    sys.exit(main())
