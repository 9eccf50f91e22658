"""
Command-line front end for the translation core.

Usage:
    python -m popup_translator "こんにちは"
    echo "Good morning" | python -m popup_translator --model claude-3-5-haiku-20241022
    python -m popup_translator --stats
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from popup_translator.config.settings import settings
from popup_translator.services.errors.classifier import ClassifiedError
from popup_translator.services.errors.exceptions import TranslationValidationError
from popup_translator.services.errors.retry import RetryPolicy
from popup_translator.services.translation.engine import TranslationEngine, get_translation_engine
from popup_translator.services.translation.events import Delta, Failed, Usage


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="popup_translator",
        description="Stream a Japanese <-> English translation",
    )
    parser.add_argument("text", nargs="?", help="Text to translate (read from stdin if omitted)")
    parser.add_argument("--model", default=None, help="Model identifier (default: settings)")
    parser.add_argument("--retries", type=int, default=2, help="Retries for retryable failures")
    parser.add_argument("--no-cache", action="store_true", help="Bypass the translation cache")
    parser.add_argument("--clear-cache", action="store_true", help="Clear the translation cache")
    parser.add_argument("--stats", action="store_true", help="Print cache statistics")
    parser.add_argument("--history", action="store_true", help="Print recent translation errors")
    parser.add_argument("--clear-history", action="store_true", help="Clear the error history")
    parser.add_argument("--list-models", action="store_true", help="List available models")
    return parser


async def translate_with_retry(
    engine: TranslationEngine,
    text: str,
    model: Optional[str],
    policy: RetryPolicy,
) -> Optional[ClassifiedError]:
    """Stream one translation to stdout, retrying per policy. Returns the final failure, if any."""
    attempt = 0
    while True:
        attempt += 1
        failure: Optional[ClassifiedError] = None
        usage: Optional[Usage] = None

        async for tagged in engine.translate(text, model):
            event = tagged.event
            if isinstance(event, Delta):
                sys.stdout.write(event.text)
                sys.stdout.flush()
            elif isinstance(event, Usage):
                usage = event
            elif isinstance(event, Failed):
                failure = event.error

        if failure is None:
            sys.stdout.write("\n")
            if usage is not None:
                source = "cache" if usage.cache_hit else f"{usage.input_tokens} in / {usage.output_tokens} out"
                print(f"💰 ${usage.estimated_cost:.6f} ({source})", file=sys.stderr)
            return None

        delay = policy.next_delay(failure, attempt)
        if delay is None:
            return failure
        print(f"\n⚠️ {failure.user_message} Retrying in {delay:g}s...", file=sys.stderr)
        await asyncio.sleep(delay)


async def run(args: argparse.Namespace) -> int:
    engine = get_translation_engine()
    try:
        if args.list_models:
            for model_id, name in engine.available_models():
                print(f"{model_id}\t{name}")
        if args.clear_cache:
            engine.clear_cache()
            print("🧹 Translation cache cleared", file=sys.stderr)
        if args.clear_history:
            engine.clear_error_history()
            print("🧹 Error history cleared", file=sys.stderr)
        if args.stats:
            stats = engine.cache_stats()
            print(
                f"📊 entries={stats.entry_count} hits={stats.hits} "
                f"misses={stats.misses} enabled={stats.enabled}"
            )
        if args.history:
            for entry in engine.get_error_history():
                print(f"{entry.timestamp:.0f}\t{entry.error_type}\t{entry.model}\t{entry.error_message}")

        text = args.text
        if text is None:
            if any((args.list_models, args.clear_cache, args.clear_history, args.stats, args.history)):
                return 0
            text = sys.stdin.read()

        if args.no_cache:
            engine.set_cache_enabled(False)

        policy = RetryPolicy(max_attempts=max(1, args.retries + 1))
        try:
            failure = await translate_with_retry(engine, text, args.model, policy)
        except TranslationValidationError as e:
            print(f"❌ {e}", file=sys.stderr)
            return 2

        if failure is not None:
            print(f"❌ {failure.user_message}", file=sys.stderr)
            if failure.needs_settings:
                print("🔑 Set ANTHROPIC_API_KEY in the environment or in .env", file=sys.stderr)
            return 1
        return 0
    finally:
        await engine.aclose()


def main(argv: Optional[list] = None) -> int:
    logging.basicConfig(level=settings.LOG_LEVEL)
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
