"""
Streams a design from a running server: reasoning goes to stderr,
the final HTML document to a file (or stdout).

    python -m scripts.generate_design "coffee shop website" --avoid "stock photos" -o site.html
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from app.client.stream_consumer import StreamConsumer
from app.client.stream_consumer import StreamHandlers
from app.core.logging import setup_logging
from app.models.design_models import GenerationRequest

logger = logging.getLogger("app.scripts.generate_design")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate an HTML design from a text prompt.")
    parser.add_argument("prompt", help="What the page should be about")
    parser.add_argument("--avoid", default="", help="Elements the design should avoid")
    parser.add_argument("--dark", action="store_true", help="Prefer a dark colour mode")
    parser.add_argument("--layout", choices=["centered", "wide", "boxed"], default="centered")
    parser.add_argument("--url", default=None, help="Design service base URL")
    parser.add_argument("-o", "--output", type=Path, default=None, help="Write the document here instead of stdout")
    return parser.parse_args(argv)


async def generate(args: argparse.Namespace) -> int:
    request = GenerationRequest.model_validate(
        {
            "prompt": args.prompt,
            "negativePrompt": args.avoid,
            "stylePreferences": {"darkMode": args.dark, "layout": args.layout},
        }
    )
    result: dict[str, str] = {}

    def on_reasoning(text: str) -> None:
        sys.stderr.write(text)
        sys.stderr.flush()

    def on_code(text: str) -> None:
        result["code"] = text

    def on_error(text: str) -> None:
        result["error"] = text

    await StreamConsumer(base_url=args.url).run(
        request,
        StreamHandlers(on_reasoning=on_reasoning, on_code=on_code, on_error=on_error),
    )
    sys.stderr.write("\n")

    if "error" in result:
        logger.error("Generation failed: %s", result["error"])
        return 1
    if "code" not in result:
        logger.error("Stream ended without a document")
        return 1

    if args.output:
        args.output.write_text(result["code"], encoding="utf-8")
        logger.info("Design written to %s", args.output)
    else:
        sys.stdout.write(result["code"] + "\n")
    return 0


def main(argv: list[str] | None = None) -> int:
    setup_logging()
    return asyncio.run(generate(parse_args(argv)))


if __name__ == "__main__":
    sys.exit(main())
