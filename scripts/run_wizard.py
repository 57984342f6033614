# scripts/run_wizard.py

import argparse
import logging

from crudwizard.config.settings import settings
from crudwizard.wizard_engine.errors import WizardError
from crudwizard.wizard_engine.orchestrator import Orchestrator, build_orchestrator


def cmd_init(orchestrator: Orchestrator, args: argparse.Namespace) -> int:
    result = orchestrator.initialize(args.entity_id)
    if not result.is_successful:
        for error in result.errors:
            print(f"🔥 {error}")
        return 1

    schema = result.table_schema
    print(f"✅ Table {schema.fully_qualified_name}: {len(schema.columns)} columns")
    if result.manifest.is_fallback:
        print("⚠️ Manifest service unavailable, using a fallback manifest.")
    print(result.suggested_config.model_dump_json(indent=2))
    return 0


def cmd_conflicts(orchestrator: Orchestrator, args: argparse.Namespace) -> int:
    report = orchestrator.detect_conflicts(args.entity_id)
    for error in report.errors:
        print(f"🔥 {error}")
    for warning in report.warnings:
        print(f"⚠️ {warning}")
    if report.errors:
        return 1

    if not report.conflicts:
        print("✅ No conflicts between table and manifest.")
        return 0

    print(f"Found {len(report.conflicts)} conflicts:")
    for conflict in report.conflicts:
        print(f"  - [{conflict.key}] {conflict.description} (suggested: {conflict.suggested_resolution.value})")
    return 0


def cmd_generate(orchestrator: Orchestrator, args: argparse.Namespace) -> int:
    print(f"--- Generating CRUD interface for '{args.entity_id}' ---")

    init = orchestrator.initialize(args.entity_id)
    if not init.is_successful:
        for error in init.errors:
            print(f"🔥 {error}")
        return 1
    config = init.suggested_config

    if args.accept_suggested:
        report = orchestrator.detect_conflicts(args.entity_id)
        config.conflict_resolutions = {c.key: c.suggested_resolution for c in report.conflicts}
        print(f"  - Accepted suggested resolutions for {len(report.conflicts)} conflicts.")

    config_id = orchestrator.save_configuration(config)
    print(f"  - Configuration saved with id {config_id}")
    config = orchestrator.load_configuration(config_id)

    result = orchestrator.generate_code(config)
    for warning in result.warnings:
        print(f"⚠️ {warning}")
    for error in result.errors:
        print(f"🔥 {error}")

    if result.files and not args.no_zip:
        orchestrator.package(result)
        if result.output_zip_path:
            print(f"  - Package written to {result.output_zip_path}")

    print(f"Generated {len(result.files)} files in {result.duration_ms}ms (status: {result.status.value}).")
    return 0 if result.is_successful else 1


def cmd_history(orchestrator: Orchestrator, args: argparse.Namespace) -> int:
    summaries = orchestrator.get_history(args.entity_id)
    if not summaries:
        print(f"No saved configurations for '{args.entity_id}'.")
        return 0
    for summary in summaries:
        print(f"{summary.generated_at.isoformat()}  {summary.config_id}  {summary.config_hash}")
    return 0


def cmd_show(orchestrator: Orchestrator, args: argparse.Namespace) -> int:
    try:
        config = orchestrator.load_configuration(args.config_id)
    except WizardError as e:
        print(f"🔥 {e}")
        return 1
    print(config.model_dump_json(indent=2))
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="CRUD wizard command line")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Read manifest and table, print the suggested configuration")
    init_parser.add_argument("entity_id")

    conflicts_parser = subparsers.add_parser("conflicts", help="List conflicts between table and manifest")
    conflicts_parser.add_argument("entity_id")

    generate_parser = subparsers.add_parser("generate", help="Save the suggested configuration and generate code")
    generate_parser.add_argument("entity_id")
    generate_parser.add_argument("--accept-suggested", action="store_true",
                                 help="Record the suggested resolution for every detected conflict")
    generate_parser.add_argument("--no-zip", action="store_true", help="Skip the zip package")

    history_parser = subparsers.add_parser("history", help="List saved configurations of an entity")
    history_parser.add_argument("entity_id")

    show_parser = subparsers.add_parser("show", help="Print a saved configuration")
    show_parser.add_argument("config_id")

    args = parser.parse_args()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    commands = {
        "init": cmd_init,
        "conflicts": cmd_conflicts,
        "generate": cmd_generate,
        "history": cmd_history,
        "show": cmd_show,
    }
    orchestrator = build_orchestrator(settings)
    return commands[args.command](orchestrator, args)


if __name__ == "__main__":
    raise SystemExit(main())
