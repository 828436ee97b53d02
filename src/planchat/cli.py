import argparse
import json
import logging
import sys
from pathlib import Path

from planchat.config import settings
from planchat.sentry import capture_exception, init_sentry
from planchat.sentry import flush as sentry_flush


def setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def parse_text(text: str) -> int:
    """Print the confirmation card for one utterance as JSON."""
    from planchat.services.pipeline import extract, project_to_card

    card = project_to_card(extract(text))
    print(json.dumps(card.to_dict(), ensure_ascii=False, indent=2))
    return 0


def show_digest(path: str) -> int:
    """Print the coach line and bucketed message for a JSON list of tasks."""
    from planchat.services.digest import digest_for_pending_tasks

    source = Path(path)
    if not source.exists():
        print(f"Error: {path} not found")
        return 1

    try:
        raw = json.loads(source.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        print(f"Error: {path} is not valid JSON ({e})")
        return 1

    tasks = raw.get("tasks", []) if isinstance(raw, dict) else raw
    digest = digest_for_pending_tasks(tasks)
    print(digest.coach_line)
    if digest.message:
        print()
        print(digest.message)
    return 0


def check_config() -> int:
    print("planchat Configuration Check\n")

    checks = [
        ("OpenAI API Key", settings.has_openai),
        ("Gemini API Key", settings.has_gemini),
        ("Anthropic API Key", settings.has_anthropic),
        ("Sentry DSN", settings.has_sentry),
    ]
    for name, configured in checks:
        status = "OK" if configured else "MISSING"
        symbol = "+" if configured else "-"
        print(f"  [{symbol}] {name}: {status}")

    print(f"\n  Timezone: {settings.user_timezone}")
    print(f"  Data dir: {settings.data_dir}")

    print()
    if settings.has_llm:
        print("LLM provider configured. Remote extraction enabled.")
    else:
        print("No LLM provider configured. Local rules only.")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Korean chat planner")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    parse_cmd = subparsers.add_parser("parse", help="Parse an utterance into a card")
    parse_cmd.add_argument("text", help="Utterance to parse")
    digest_cmd = subparsers.add_parser("digest", help="Summarize pending tasks from a JSON file")
    digest_cmd.add_argument("file", help="JSON file with a list of task records")
    subparsers.add_parser("check-config", help="Check configuration")

    args = parser.parse_args(argv)

    setup_logging()

    # Disabled when no DSN is configured
    init_sentry(environment=settings.sentry_environment)

    try:
        if args.command == "parse":
            return parse_text(args.text)
        if args.command == "digest":
            return show_digest(args.file)
        if args.command == "check-config":
            return check_config()
        parser.print_help()
        return 1
    except Exception as e:
        capture_exception(e)
        raise
    finally:
        sentry_flush(timeout=2.0)


if __name__ == "__main__":
    sys.exit(main())
