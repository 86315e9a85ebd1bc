"""CLI for fixup-slugs - slug management for marketplace records."""

import argparse
import asyncio
import json
import logging
import platform
import subprocess
import sys
from pathlib import Path
from typing import Any

from . import __version__
from .adapters.yaml_codec import YamlRecordCodec, dump_records, load_records
from .core.model import SluggedRecord, UpdateResult
from .maintenance import apply_repair, audit, import_records, plan_repair
from .runtime import Runtime, build_runtime
from .sitemap import build_sitemap, sitemap_stats


def _print_record(record: SluggedRecord, args: argparse.Namespace) -> None:
    if args.json:
        print(json.dumps(record.to_dict(), ensure_ascii=False))
    elif not args.quiet:
        flag = "manual" if record.slug_is_manual else "auto"
        print(f"{record.id}\t{record.slug}\t{flag}\t{record.display_name}")


def _report(result: UpdateResult, args: argparse.Namespace) -> int:
    if result.ok:
        if result.record is not None:
            _print_record(result.record, args)
        return 0
    print(f"Error ({result.error}): {result.reason}", file=sys.stderr)
    return 2 if result.error == "not_found" else 1


async def cmd_preview(args: argparse.Namespace, rt: Runtime) -> int:
    """Print the slug a name would get, without touching the store."""
    print(rt.manager(args.kind).preview(args.name))
    return 0


async def cmd_validate(args: argparse.Namespace, rt: Runtime) -> int:
    validation = rt.manager(args.kind).validate(args.slug)
    if args.json:
        print(json.dumps({"valid": validation.valid, "reason": validation.reason}))
    elif validation.valid:
        if not args.quiet:
            print(f"✓ {args.slug}")
    else:
        print(f"✗ {args.slug}: {validation.reason}")
    return 0 if validation.valid else 1


async def cmd_generate(args: argparse.Namespace, rt: Runtime) -> int:
    """Generate a unique slug against the store."""
    proposal = await rt.manager(args.kind).generate(args.name, exclude_id=args.exclude)
    if args.json:
        print(json.dumps(
            {"slug": proposal.slug, "unique": proposal.unique, "error": proposal.error}
        ))
    else:
        print(proposal.slug)
        if not proposal.unique:
            print(f"Warning: unsaved preview, store unavailable: {proposal.error}", file=sys.stderr)
    return 0 if proposal.unique else 1


async def cmd_add(args: argparse.Namespace, rt: Runtime) -> int:
    """Create a record."""
    result = await rt.manager(args.kind).create(args.name, slug=args.slug)
    return _report(result, args)


async def cmd_rename(args: argparse.Namespace, rt: Runtime) -> int:
    """Change a display name; auto slugs follow, manual slugs stay."""
    result = await rt.manager(args.kind).rename(args.id, args.name)
    return _report(result, args)


async def cmd_set_slug(args: argparse.Namespace, rt: Runtime) -> int:
    """Operator slug edit."""
    result = await rt.manager(args.kind).update_slug(args.id, args.slug, is_manual=not args.auto)
    return _report(result, args)


async def cmd_reset(args: argparse.Namespace, rt: Runtime) -> int:
    """Reset a slug to the auto-generated one."""
    result = await rt.manager(args.kind).reset_slug_to_auto(args.id, args.name)
    return _report(result, args)


async def cmd_resolve(args: argparse.Namespace, rt: Runtime) -> int:
    """Resolve a slug (or numeric id) to a record."""
    found = await rt.manager(args.kind).find_by_slug(args.slug)
    if not found.found:
        if not args.quiet:
            print(f"No {rt.manager(args.kind).kind} for '{args.slug}' ({found.error})", file=sys.stderr)
        return 1 if found.error == "lookup_failed" else 2

    _print_record(found.record, args)
    if found.redirect_to and not args.quiet and not args.json:
        print(f"Canonical slug: {found.redirect_to}", file=sys.stderr)
    return 0


async def cmd_ls(args: argparse.Namespace, rt: Runtime) -> int:
    """List records of the kind."""
    manager = rt.manager(args.kind)
    records = await rt.store.list_records(manager.kind)
    if args.json:
        print(json.dumps([r.to_dict() for r in records], indent=2, ensure_ascii=False))
    else:
        for record in records:
            _print_record(record, args)
    return 0


async def cmd_rm(args: argparse.Namespace, rt: Runtime) -> int:
    result = await rt.manager(args.kind).delete(args.id)
    if result.ok and not args.quiet:
        print(f"Deleted {args.id}")
    return _report(result, args)


async def cmd_duplicates(args: argparse.Namespace, rt: Runtime) -> int:
    """Report duplicate and malformed slugs."""
    manager = rt.manager(args.kind)
    records = await rt.store.list_records(manager.kind)
    findings = audit(records, manager.settings)

    if args.json:
        print(json.dumps(
            [{"severity": f.severity, "id": f.record_id, "message": f.message} for f in findings],
            indent=2,
        ))
    elif not findings:
        if not args.quiet:
            print(f"✓ {len(records)} {manager.kind} slugs, no problems")
    else:
        for finding in findings:
            print(f"[{finding.severity}] {finding.record_id}: {finding.message}")

    return 1 if findings else 0


async def cmd_repair(args: argparse.Namespace, rt: Runtime) -> int:
    """Plan and apply slug repairs."""
    manager = rt.manager(args.kind)
    records = await rt.store.list_records(manager.kind)
    actions = plan_repair(records, manager.settings)

    if not actions:
        if not args.quiet:
            print("Nothing to repair")
        return 0

    for action in actions:
        note = " (manual)" if action.slug_is_manual else ""
        print(f"{action.record_id}: {action.old_slug!r} -> {action.new_slug!r} [{action.reason}]{note}")

    if args.dry_run:
        print(f"Dry run: {len(actions)} changes not applied")
        return 0

    applied = await apply_repair(rt.store, manager.kind, actions)
    if not args.quiet:
        print(f"Repaired {applied} slugs")
    return 0


async def cmd_import(args: argparse.Namespace, rt: Runtime) -> int:
    """Import records from a YAML file."""
    path = Path(args.file)
    if not path.exists():
        print(f"File does not exist: {path}", file=sys.stderr)
        return 1

    exit_code = 0
    for kind, records in load_records(path).items():
        report = await import_records(rt.manager(kind), records)
        if not args.quiet:
            print(
                f"{kind}: {len(report.created)} kept, {len(report.generated)} generated, "
                f"{len(report.skipped)} skipped"
            )
        for finding in report.skipped:
            print(f"  [{finding.severity}] {finding.record_id}: {finding.message}", file=sys.stderr)
            exit_code = 1
    return exit_code


async def cmd_export(args: argparse.Namespace, rt: Runtime) -> int:
    """Export records as YAML."""
    records_by_kind = await rt.records_by_kind()
    if args.file:
        dump_records(Path(args.file), records_by_kind)
        if not args.quiet:
            total = sum(len(r) for r in records_by_kind.values())
            print(f"Exported {total} records to {args.file}")
    else:
        sys.stdout.write(YamlRecordCodec().encode(records_by_kind))
    return 0


async def cmd_sitemap(args: argparse.Namespace, rt: Runtime) -> int:
    """Write the sitemap XML."""
    xml = build_sitemap(await rt.records_by_kind(), rt.config.sitemap)

    if args.out:
        Path(args.out).write_text(xml, encoding="utf-8")
    else:
        sys.stdout.write(xml)

    if args.stats:
        stats = sitemap_stats(xml, rt.config.sitemap)
        print(f"Total URLs: {stats.total}", file=sys.stderr)
        for kind, count in sorted(stats.by_route.items()):
            print(f"  {kind}: {count}", file=sys.stderr)
    return 0


def cmd_serve(args: argparse.Namespace, rt: Runtime) -> int:
    """Start the HTTP API server."""
    import uvicorn

    from .api.app import create_app, generate_token

    # Determine token
    token_arg = getattr(args, 'token', 'auto')
    token = None

    if token_arg == 'auto':
        token = generate_token()
        print(f"Generated bearer token: {token}")
        print(f"Use in requests: Authorization: Bearer {token}")
    elif token_arg == 'none':
        print("Warning: Running without authentication. Only use in trusted environments.")
        token = None
    else:
        token = token_arg

    app = create_app(rt, token=token, enable_cors=args.cors)

    print(f"Starting server on http://{args.host}:{args.port}")
    uvicorn.run(app, host=args.host, port=args.port, log_level="info")
    return 0


def version_text() -> str:
    try:
        commit = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            capture_output=True,
            text=True,
            cwd=Path(__file__).parent,
        ).stdout.strip()
    except OSError:
        commit = ""
    return (
        f"fixup-slugs {__version__}\n"
        f"python {platform.python_version()}\n"
        f"platform {platform.platform()}\n"
        f"commit {commit or 'unknown'}"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="slugs",
        description="Slug management for FixUp marketplace records",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version", action="version", version=version_text()
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config file (default: cwd/slugs.toml)",
    )
    parser.add_argument(
        "--db",
        default=None,
        help="Path to SQLite record store, or :memory: (overrides config)",
    )
    parser.add_argument(
        "--kind", default=None, help="Record kind (default from config: service)"
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Minimize output"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Debug logging to stderr"
    )
    parser.add_argument(
        "--json", action="store_true", help="Machine-readable output"
    )

    subparsers = parser.add_subparsers(dest="cmd", required=True)

    parser_preview = subparsers.add_parser("preview", help="Show the slug for a name (no store access)")
    parser_preview.add_argument("name")

    parser_validate = subparsers.add_parser("validate", help="Check slug syntax")
    parser_validate.add_argument("slug")

    parser_generate = subparsers.add_parser("generate", help="Generate a unique slug")
    parser_generate.add_argument("name")
    parser_generate.add_argument(
        "--exclude", type=int, default=None, help="Record id whose own slug does not count"
    )

    parser_add = subparsers.add_parser("add", help="Create a record")
    parser_add.add_argument("name")
    parser_add.add_argument("--slug", default=None, help="Manual slug instead of a generated one")

    parser_rename = subparsers.add_parser("rename", help="Change a record's display name")
    parser_rename.add_argument("id", type=int)
    parser_rename.add_argument("name")

    parser_set = subparsers.add_parser("set-slug", help="Set a record's slug (manual)")
    parser_set.add_argument("id", type=int)
    parser_set.add_argument("slug")
    parser_set.add_argument(
        "--auto", action="store_true", help="Store without the manual flag"
    )

    parser_reset = subparsers.add_parser("reset", help="Reset a slug to auto")
    parser_reset.add_argument("id", type=int)
    parser_reset.add_argument("name", nargs="?", default=None, help="Name to derive from (default: stored)")

    parser_resolve = subparsers.add_parser("resolve", help="Resolve a slug or id to a record")
    parser_resolve.add_argument("slug")

    subparsers.add_parser("ls", help="List records")

    parser_rm = subparsers.add_parser("rm", help="Delete a record")
    parser_rm.add_argument("id", type=int)

    subparsers.add_parser("duplicates", help="Report duplicate and malformed slugs")

    parser_repair = subparsers.add_parser("repair", help="Fix duplicate and malformed slugs")
    parser_repair.add_argument(
        "--dry-run", action="store_true", help="Show changes without applying them"
    )

    parser_import = subparsers.add_parser("import", help="Import records from YAML")
    parser_import.add_argument("file")

    parser_export = subparsers.add_parser("export", help="Export records as YAML")
    parser_export.add_argument("file", nargs="?", default=None)

    parser_sitemap = subparsers.add_parser("sitemap", help="Generate sitemap XML")
    parser_sitemap.add_argument("--out", default=None, help="Output file (default: stdout)")
    parser_sitemap.add_argument("--stats", action="store_true", help="Print URL counts to stderr")

    parser_serve = subparsers.add_parser("serve", help="Start HTTP API server")
    parser_serve.add_argument("--host", default="127.0.0.1")
    parser_serve.add_argument("--port", type=int, default=8765)
    parser_serve.add_argument(
        "--token", default="auto", help="Bearer token, 'auto' to generate, 'none' to disable"
    )
    parser_serve.add_argument("--cors", action="store_true", help="Enable CORS")

    return parser


HANDLERS: dict[str, Any] = {
    "preview": cmd_preview,
    "validate": cmd_validate,
    "generate": cmd_generate,
    "add": cmd_add,
    "rename": cmd_rename,
    "set-slug": cmd_set_slug,
    "reset": cmd_reset,
    "resolve": cmd_resolve,
    "ls": cmd_ls,
    "rm": cmd_rm,
    "duplicates": cmd_duplicates,
    "repair": cmd_repair,
    "import": cmd_import,
    "export": cmd_export,
    "sitemap": cmd_sitemap,
}


def main() -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        rt = build_runtime(db_path=args.db, config_path=args.config, kind=args.kind)
        if args.cmd == "serve":
            exit_code = cmd_serve(args, rt)
        else:
            handler = HANDLERS.get(args.cmd)
            if handler is None:
                print(f"Unknown command: {args.cmd}", file=sys.stderr)
                sys.exit(1)
            exit_code = asyncio.run(handler(args, rt))
    except Exception as e:
        logging.getLogger(__name__).debug("command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
