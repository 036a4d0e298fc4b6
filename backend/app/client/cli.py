"""Command-line submission client: `wine-label LABEL.jpg`."""

from __future__ import annotations

import argparse
import json
import sys
from typing import Optional

from app.client.errors import MESSAGES, ErrorCategory, user_message
from app.client.render import safe_render
from app.client.submit import SubmissionError, api_url, preview, select_image, submit


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wine-label",
        description="Send a wine label photo to the analyzer and print tasting info.",
    )
    parser.add_argument("image", nargs="?", help="Path to the label image (any image/* type)")
    parser.add_argument("--url", default=None, help=f"Analyzer base URL (default: {api_url()})")
    parser.add_argument("--json", action="store_true", help="Print the record as JSON instead of text")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    img = select_image(args.image) if args.image else None
    if img is None:
        print(MESSAGES[ErrorCategory.NO_IMAGE], file=sys.stderr)
        return 1

    print(f"Analyzing {preview(img)} ...", file=sys.stderr)

    try:
        record = submit(img, args.url)
    except SubmissionError as exc:
        print(user_message(exc), file=sys.stderr)
        if exc.raw:
            print(f"Raw model output:\n{exc.raw}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(record.to_json_dict(), indent=2, ensure_ascii=False))
    else:
        print(safe_render(record))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
