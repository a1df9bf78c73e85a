#!/usr/bin/env python3
"""
Copyright (c) 2009 Satoshi Nakamoto
Distributed under the MIT/X11 software license

Command line entry point
"""

import argparse
import json
import sys
from typing import List, Optional

from scriptlab import builder, config, puzzles, services, templates, tracer
from scriptlab.errors import ScriptlabError
from scriptlab.script import detect_and_convert, script_hex_preview


def _read(value: str) -> str:
    """"-" reads the value from stdin"""
    if value == "-":
        return sys.stdin.read().strip()
    return value


def _print_verdict(valid: bool, error: Optional[str], final_stack: List[str]) -> int:
    print(f"Final stack: [{', '.join(final_stack)}]")
    if valid:
        print("✓ Valid")
        return 0
    print(f"✗ Invalid: {error}")
    return 1


def _print_trace(result: tracer.TraceResult) -> int:
    for step in result.steps:
        line = f"{step.step_number:>4}  {step.context:<15} {step.opcode:<24} [{', '.join(step.stack)}]"
        if step.alt_stack:
            line += f"  alt: [{', '.join(step.alt_stack)}]"
        if step.error:
            line += f"  ERROR: {step.error}"
        print(line)
    return _print_verdict(result.valid, result.error, result.final_stack)


def _print_build(result: builder.BuildResult) -> int:
    print(f"txid: {result.txid}")
    print(f"size: {result.size} bytes")
    print(f"fee:  {result.fee} sats ({result.fee_rate} sat/byte)")
    print(result.hex)
    return 0


def cmd_convert(args) -> int:
    text = _read(args.input)
    asm, was_hex = detect_and_convert(text)
    if was_hex:
        print(asm)
        return 0
    preview = script_hex_preview(asm)
    if preview["error"]:
        print(f"Error: {preview['error']}")
        return 1
    print(preview["hex"])
    return 0


def cmd_trace(args) -> int:
    return _print_trace(tracer.run_trace(args.locking, args.unlocking))


def cmd_validate(args) -> int:
    result = tracer.validate(args.locking, args.unlocking)
    print(f"Locking script:   {result.locking_size} bytes")
    print(f"Unlocking script: {result.unlocking_size} bytes")
    return _print_verdict(result.valid, result.error, result.final_stack)


def cmd_trace_tx(args) -> int:
    source = _read(args.source_tx)
    spending = _read(args.spending_tx)
    if args.consensus:
        result = tracer.validate_transaction_spend(source, spending, args.output, args.input)
        return _print_verdict(result.valid, result.error, result.final_stack)
    return _print_trace(tracer.run_trace_with_real_context(source, spending, args.output, args.input))


def cmd_hash_puzzle(args) -> int:
    puzzle = puzzles.build_hash_puzzle(args.secret, args.hex, args.hash_type)
    print(f"Locking script:   {puzzle.locking_asm}")
    print(f"Unlocking script: {puzzle.preimage_hex}")
    return 0


def cmd_rpuzzle(args) -> int:
    puzzle = puzzles.generate_puzzle(args.variant)
    print(f"K (secret):     {puzzle.k_hex}")
    print(f"R:              {puzzle.r_hex}")
    print(f"Locking script: {puzzle.locking_asm}")
    print(puzzle.note)
    return 0


def cmd_templates(args) -> int:
    if args.id:
        template = templates.get_template(args.id)
        print(f"{template.name} ({template.category})")
        print(template.description)
        print(f"Locking:   {template.locking_asm}")
        print(f"Unlocking: {template.unlocking_asm}")
        if template.note:
            print(f"Note: {template.note}")
        return 0
    for category, entries in templates.templates_by_category().items():
        print(category)
        for template in entries:
            print(f"  {template.id:<20} {template.name}")
    return 0


def cmd_opcodes(args) -> int:
    for category in templates.OPCODE_REFERENCE:
        print(category.category)
        for entry in category.opcodes:
            print(f"  {entry.name:<24} {entry.desc}")
    return 0


def cmd_lock(args) -> int:
    result = builder.build_lock_transaction(
        args.wif,
        _read(args.source_tx),
        args.output,
        args.locking,
        args.amount,
        args.fee_rate,
        args.change_address,
    )
    return _print_build(result)


def cmd_unlock(args) -> int:
    source = _read(args.source_tx)
    if args.k:
        if not args.wif or not args.destination:
            print("Error: --k requires --wif and --destination")
            return 1
        result = builder.build_rpuzzle_unlock_transaction(
            args.wif, args.k, args.variant, source, args.output, args.destination, args.fee_rate
        )
    elif args.lock_time is not None:
        if not args.destination:
            print("Error: --lock-time requires --destination")
            return 1
        result = builder.build_unlock_transaction_with_lock_time(
            source, args.output, args.unlocking or "", args.destination, args.fee_rate, args.lock_time
        )
    else:
        result = builder.build_unlock_transaction(
            source, args.output, args.unlocking or "", args.destination, args.fee_rate, args.wif
        )
    return _print_build(result)


def cmd_fetch(args) -> int:
    if args.address:
        print(json.dumps(services.fetch_utxos(args.address), indent=2))
        return 0
    if not args.txid:
        print("Error: a txid or --address is required")
        return 1
    print(services.fetch_raw_transaction(args.txid))
    return 0


def cmd_broadcast(args) -> int:
    print(services.broadcast_transaction(_read(args.tx_hex)))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="scriptlab", description="BSV script playground")
    parser.add_argument("--fee-rate", type=float, default=config.DEFAULT_FEE_RATE, help="sat/byte")
    parser.add_argument("--network", choices=sorted(config.ADDRESS_VERSIONS), default=config.NETWORK)
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=config.LOG_LEVEL,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("convert", help="Convert between hex and ASM")
    p.add_argument("input", help='hex or ASM, "-" for stdin')
    p.set_defaults(func=cmd_convert)

    for name, func, help_text in (
        ("trace", cmd_trace, "Trace a script pair step by step"),
        ("validate", cmd_validate, "Validate a script pair"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("locking", help="locking script ASM")
        p.add_argument("unlocking", nargs="?", default="", help="unlocking script ASM")
        p.set_defaults(func=func)

    p = sub.add_parser("trace-tx", help="Trace a real spend")
    p.add_argument("source_tx", help='source transaction hex, "-" for stdin')
    p.add_argument("spending_tx", help="spending transaction hex")
    p.add_argument("--output", type=int, default=0, help="source output index")
    p.add_argument("--input", type=int, default=0, help="spending input index")
    p.add_argument("--consensus", action="store_true", help="apply the full consensus rules")
    p.set_defaults(func=cmd_trace_tx)

    p = sub.add_parser("hash-puzzle", help="Build a hash puzzle")
    p.add_argument("secret")
    p.add_argument("--hex", action="store_true", help="the secret is hex")
    p.add_argument("--hash-type", choices=puzzles.HASH_TYPES, default="SHA256")
    p.set_defaults(func=cmd_hash_puzzle)

    p = sub.add_parser("rpuzzle", help="Generate an R-puzzle")
    p.add_argument("--variant", choices=puzzles.RPUZZLE_VARIANTS, default="raw")
    p.set_defaults(func=cmd_rpuzzle)

    p = sub.add_parser("templates", help="List templates or show one")
    p.add_argument("id", nargs="?")
    p.set_defaults(func=cmd_templates)

    p = sub.add_parser("opcodes", help="Print the opcode reference")
    p.set_defaults(func=cmd_opcodes)

    p = sub.add_parser("lock", help="Lock coins into a custom script")
    p.add_argument("--wif", required=True)
    p.add_argument("--source-tx", required=True)
    p.add_argument("--output", type=int, default=0)
    p.add_argument("--locking", required=True, help="locking script ASM")
    p.add_argument("--amount", type=int, required=True, help="satoshis to lock")
    p.add_argument("--change-address")
    p.set_defaults(func=cmd_lock)

    p = sub.add_parser("unlock", help="Spend a custom-locked output")
    p.add_argument("--source-tx", required=True)
    p.add_argument("--output", type=int, default=0)
    p.add_argument("--unlocking", help="unlocking script ASM")
    p.add_argument("--destination")
    p.add_argument("--wif")
    p.add_argument("--lock-time", type=int)
    p.add_argument("--k", help="R-puzzle nonce (hex)")
    p.add_argument("--variant", choices=puzzles.RPUZZLE_VARIANTS, default="raw")
    p.set_defaults(func=cmd_unlock)

    p = sub.add_parser("fetch", help="Fetch a raw transaction or an address's UTXOs")
    p.add_argument("txid", nargs="?")
    p.add_argument("--address")
    p.set_defaults(func=cmd_fetch)

    p = sub.add_parser("broadcast", help="Broadcast a raw transaction")
    p.add_argument("tx_hex", help='"-" for stdin')
    p.set_defaults(func=cmd_broadcast)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config.NETWORK = args.network
    config.LOG_LEVEL = args.log_level
    for module in (builder, services, tracer):
        module.logger.setLevel(args.log_level)

    try:
        return args.func(args)
    except (ScriptlabError, KeyError, ValueError) as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(1)
