# Benefit Vault - Command Line Entry Point
#
# Encrypted export/import of eligibility results, print documents, and
# the local result vault. Passwords are always read with getpass, never
# from arguments or the environment.

import argparse
import asyncio
import getpass
import json
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .core.audit_log import EventSeverity, EventType, audit_best_effort
from .crypto.passphrase import evaluate_passphrase_strength, strength_message
from .exceptions import BenefitVaultError, StorageError
from .export.envelope import ExportEnvelopeCodec, ExportMetadata
from .export.package_file import (
    PACKAGE_EXTENSION,
    generate_export_filename,
    read_package,
    write_package,
)
from .export.print_document import PrintDocumentBuilder, PrintUserInfo
from .models import EligibilityResults, json_default
from .vault.result_store import ResultVaultStore
from .vault.storage import SQLiteRecordDriver


def _load_json(path: str, what: str):
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise BenefitVaultError(f"Could not read {what}: {e.strerror}") from e
    except json.JSONDecodeError as e:
        raise BenefitVaultError(f"{what.capitalize()} is not valid JSON") from e


def _load_results(path: str) -> EligibilityResults:
    data = _load_json(path, "results file")
    try:
        return EligibilityResults.from_dict(data)
    except (KeyError, ValueError, TypeError, AttributeError) as e:
        raise BenefitVaultError("Results file does not contain eligibility results") from e


def _emit(text: str, output: Optional[str]) -> None:
    if output:
        try:
            Path(output).write_text(text, encoding="utf-8")
        except OSError as e:
            raise StorageError("Could not write output file", operation="write_output") from e
        print(f"Wrote {output}")
    else:
        print(text)


def _prompt_new_password() -> tuple:
    password = getpass.getpass("Export password: ")
    print(strength_message(evaluate_passphrase_strength(password)))
    confirm = getpass.getpass("Confirm password: ")
    return password, confirm


# ── Commands ─────────────────────────────────────────────────────────


def cmd_export(args) -> int:
    results = _load_results(args.results)
    profile = _load_json(args.profile, "profile file") if args.profile else None
    metadata = ExportMetadata(user_name=args.user_name, state=args.state, notes=args.notes)

    password, confirm = _prompt_new_password()
    package = ExportEnvelopeCodec().build(
        results,
        password,
        profile_snapshot=profile,
        metadata=metadata,
        confirm_password=confirm,
    )
    output = args.output or generate_export_filename() + PACKAGE_EXTENSION
    path = write_package(output, package)
    print(f"Encrypted export written to {path}")
    return 0


def cmd_import(args) -> int:
    package = read_package(args.package)
    password = getpass.getpass("Password: ")
    envelope = ExportEnvelopeCodec().parse(package, password)
    _emit(json.dumps(envelope.to_dict(), indent=2, default=json_default), args.output)
    return 0


def cmd_print(args) -> int:
    results = _load_results(args.results)
    output = args.output or generate_export_filename("eligibility-print") + ".html"
    path = PrintDocumentBuilder().write(output, results, PrintUserInfo(name=args.name))
    print(f"Print document written to {path}")
    return 0


async def _vault_command(args) -> int:
    store = ResultVaultStore(SQLiteRecordDriver(args.db) if args.db else None)
    await store.unlock(getpass.getpass("Vault password: "))
    try:
        if args.vault_command == "save":
            record_id = await store.save(
                _load_results(args.results),
                user_name=args.user_name,
                state=args.state,
                tags=args.tag,
                notes=args.notes,
            )
            print(record_id)

        elif args.vault_command == "list":
            for summary in await store.list_summaries():
                tags = ", ".join(summary.tags)
                print(
                    f"{summary.id}  {summary.evaluated_at:%Y-%m-%d %H:%M}  "
                    f"{summary.qualified_count}/{summary.total_programs} qualified"
                    + (f"  [{tags}]" if tags else "")
                )

        elif args.vault_command == "show":
            record = await store.load_record(args.id)
            if record is None:
                print(f"No saved result {args.id}", file=sys.stderr)
                return 1
            data = {
                **record.summary.to_dict(),
                "userName": record.user_name,
                "notes": record.notes,
                "results": record.results.to_dict(),
            }
            _emit(json.dumps(data, indent=2, default=json_default), args.output)

        elif args.vault_command == "delete":
            if not await store.delete(args.id):
                print(f"No saved result {args.id}", file=sys.stderr)
                return 1
            print(f"Deleted {args.id}")

        elif args.vault_command == "tag":
            tags = [] if args.clear_tags else (args.tags or None)
            await store.update(args.id, tags=tags, notes=args.notes)
            print(f"Updated {args.id}")
    finally:
        await store.lock()
    return 0


def cmd_vault(args) -> int:
    return asyncio.run(_vault_command(args))


# ── Parser ───────────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="benefit-vault",
        description="Encrypted export, import, print and storage of benefit eligibility results",
    )
    parser.add_argument("--version", action="version", version=f"Benefit Vault v{__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("export", help="Encrypt a results JSON file into a portable package")
    p.add_argument("results", help="Eligibility results JSON file")
    p.add_argument("-o", "--output", help=f"Package path (default: timestamped {PACKAGE_EXTENSION})")
    p.add_argument("--profile", help="Optional profile snapshot JSON file")
    p.add_argument("--user-name")
    p.add_argument("--state")
    p.add_argument("--notes")
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("import", help="Decrypt a package and print its contents as JSON")
    p.add_argument("package", help="Encrypted package file")
    p.add_argument("-o", "--output", help="Write decrypted JSON here instead of stdout")
    p.set_defaults(func=cmd_import)

    p = sub.add_parser("print", help="Render a results JSON file as a printable HTML page")
    p.add_argument("results", help="Eligibility results JSON file")
    p.add_argument("-o", "--output", help="HTML path (default: timestamped .html)")
    p.add_argument("--name", help="Name shown as 'Prepared for'")
    p.set_defaults(func=cmd_print)

    p = sub.add_parser("vault", help="Manage the local encrypted result vault")
    p.add_argument("--db", help="Vault database path (default: configured data dir)")
    vault_sub = p.add_subparsers(dest="vault_command", required=True)

    v = vault_sub.add_parser("save", help="Save a results JSON file to the vault")
    v.add_argument("results")
    v.add_argument("--tag", action="append", default=[])
    v.add_argument("--user-name")
    v.add_argument("--state")
    v.add_argument("--notes")

    vault_sub.add_parser("list", help="List saved results, newest first")

    v = vault_sub.add_parser("show", help="Decrypt and show a saved result")
    v.add_argument("id")
    v.add_argument("-o", "--output")

    v = vault_sub.add_parser("delete", help="Delete a saved result")
    v.add_argument("id")

    v = vault_sub.add_parser("tag", help="Replace the tags and/or notes of a saved result")
    v.add_argument("id")
    v.add_argument("tags", nargs="*", help="New tags; existing tags are kept when none are given")
    v.add_argument("--notes")
    v.add_argument("--clear-tags", action="store_true", help="Remove all tags")

    p.set_defaults(func=cmd_vault)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the benefit-vault console script."""
    args = build_parser().parse_args(argv)

    audit_best_effort(EventType.SYSTEM_START, "Benefit Vault CLI started", {
        "version": __version__,
        "command": args.command,
    })

    try:
        return args.func(args)
    except BenefitVaultError as e:
        print(f"Error: {e}", file=sys.stderr)
        audit_best_effort(
            EventType.SYSTEM_STOP,
            "Benefit Vault command failed",
            {"command": args.command, "error": type(e).__name__},
            severity=EventSeverity.INVESTIGATE,
        )
        return 1
    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
