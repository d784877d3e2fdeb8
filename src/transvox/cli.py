"""
Command-Line Interface for transvox.

This module runs a translation without starting the HTTP server. A dry-run
mode shows what the gateway would do (validation, model choice, token
budget, chunking, terminology) without calling any provider.

Usage Examples:
    # Single translation (needs OPENAI_API_KEY and/or GEMINI_API_KEY)
    transvox --text "Hello world." --target Korean

    # Positional text (same as above)
    transvox "Hello world." --target Korean

    # Contextual mode at quality tier 5
    transvox "Check the feeder." --target Vietnamese --context "Formal tone" --quality 5

    # Dry-run mode (no provider call), JSON summary
    transvox --text "SMD feeder loss" --target Vietnamese --domain manufacturing --dry-run --json

Environment Variables:
    TRANSVOX_SETTINGS: Settings file (default config/settings.yaml)
    OPENAI_API_KEY, GEMINI_API_KEY: Provider keys
"""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any, Dict, List, Optional
from uuid import uuid4

from transvox.api.dependencies import get_settings
from transvox.collaborators import build_in_memory_collaborators
from transvox.core.config import GatewayConfig
from transvox.core.errors import GatewayError
from transvox.core.logging import configure_logging, fail, get_logger, info, set_request_id
from transvox.services.gateway import GatewayService, TranslationRequest, select_model
from transvox.services.validators import validate_quality_level, validate_target_language, validate_text
from transvox.translation.budget import effective_max_tokens, estimate_max_tokens, get_quality_profile
from transvox.translation.cache import EphemeralCache
from transvox.translation.chunker import split_into_sentences
from transvox.translation.language import detect_source_language
from transvox.translation.providers import MODEL_FAMILY, ProviderFamily, normalize_model
from transvox.translation.terminology import apply_terminology, domain_preamble


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: Optional list of arguments (defaults to sys.argv).

    Returns:
        Parsed argument namespace with all CLI options.
    """
    parser = argparse.ArgumentParser(description="transvox CLI (translate without the server)")

    # Input
    parser.add_argument("text_pos", nargs="?", help="Text to translate (positional)")
    parser.add_argument("--text", help="Text to translate")
    parser.add_argument("--target", default="Korean", help="Target language name (default: Korean)")

    # Translation options
    parser.add_argument("--quality", type=int, help="Quality tier 1-5")
    parser.add_argument("--domain", default="general", help="Domain tag (general, manufacturing)")
    parser.add_argument("--model", default="auto", help="auto, gemini-1.5-flash, gpt-4o-mini, gpt-4o")
    parser.add_argument("--no-pronunciation", action="store_true",
                        help="Skip Hangul pronunciation guidance")
    parser.add_argument("--context", help="Contextual instruction (enables contextual mode)")

    # Execution modes
    parser.add_argument("--dry-run", action="store_true",
                        help="Validate and summarize without calling a provider")
    parser.add_argument("--json", action="store_true",
                        help="Print JSON summary")

    return parser.parse_args(argv)


def _dry_run_summary(config: GatewayConfig, args: argparse.Namespace, text: str) -> Dict[str, Any]:
    """
    Describe what a translation of ``text`` would do, without provider calls.

    Raises:
        ValidationError: If the input would be rejected by the gateway.
    """
    text = validate_text(text, config.limits.max_input_chars)
    target = validate_target_language(args.target)
    quality = validate_quality_level(args.quality, config.limits.default_quality_level)
    requested = normalize_model(args.model)
    selected = select_model(requested, text, config.routing, config.providers.gemini_api_key)

    contextual = bool(args.context) or bool(domain_preamble(args.domain))
    if contextual and MODEL_FAMILY[selected] is ProviderFamily.DEEP:
        profile = get_quality_profile(quality)
        max_tokens = effective_max_tokens(profile, len(text))
    else:
        max_tokens = estimate_max_tokens(len(text))

    return {
        "text_len": len(text),
        "source_language": detect_source_language(text),
        "target_language": target,
        "quality_level": quality,
        "requested_model": requested.value,
        "selected_model": selected.value,
        "contextual": contextual,
        "max_tokens": max_tokens,
        "chunks": split_into_sentences(text, config.chunking.max_chars),
        "terminology_preview": apply_terminology(text, args.domain, target),
    }


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Orchestrates the CLI workflow:
        1. Parse arguments and configure logging
        2. Load settings
        3. Handle dry-run mode (if requested)
        4. Run one translation through GatewayService
        5. Output results in text or JSON format

    Args:
        argv: Optional list of command-line arguments.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = _parse_args(argv)

    configure_logging()
    log = get_logger("transvox.cli")
    set_request_id(str(uuid4())[:12])

    text = args.text or args.text_pos
    if not text:
        raise SystemExit("Provide --text or a positional text.")

    settings = get_settings()
    config = settings.get_gateway_config()

    try:
        if args.dry_run:
            payload = {"ok": True, "dry_run": True, **_dry_run_summary(config, args, text)}
            if args.json:
                print(json.dumps(payload, ensure_ascii=False))
            else:
                info(log, "dry_run", model=payload["selected_model"], chunks=len(payload["chunks"]))
                print(payload)
            print("DRY_RUN_OK")
            return 0

        service = GatewayService(config, build_in_memory_collaborators(), EphemeralCache())
        result = asyncio.run(service.translate(TranslationRequest(
            text=text,
            target_language=args.target,
            quality_level=args.quality,
            pronunciation=not args.no_pronunciation,
            contextual_prompt=args.context,
            use_ai_context=bool(args.context),
            domain=args.domain,
            model=args.model,
        )))
    except GatewayError as e:
        fail(log, "cli_failed", code=e.code, error=e.message)
        if args.json:
            print(json.dumps({"ok": False, **e.to_dict()}, ensure_ascii=False))
        else:
            print(f"[{e.code}] {e.message}")
        return 1

    payload = {"ok": True, "dry_run": False, **result.to_dict()}
    if args.json:
        print(json.dumps(payload, ensure_ascii=False))
    else:
        print(result.translation)
        if result.pronunciation:
            print(result.pronunciation)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
