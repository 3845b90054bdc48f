#!/usr/bin/env python3
"""
Send one request to a running relay and print the JSON reply.

Examples:
    python scripts/send_prompt.py --prompt "2+2=?"
    python scripts/send_prompt.py --variant coach --submission submission.json \
        --origin http://localhost:5173
"""

from __future__ import annotations

import argparse
import json
import os
import sys

import httpx

DEFAULT_BASE_URL = os.environ.get("RELAY_BASE_URL", "http://localhost:8000")


def build_payload(args: argparse.Namespace) -> dict:
    if args.submission:
        with open(args.submission, "r", encoding="utf-8") as fh:
            return json.load(fh)
    return {"prompt": args.prompt}


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL)
    parser.add_argument("--variant", default="prompt", help="prompt, feedback or coach")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--prompt", help="Prompt text for the prompt relay")
    group.add_argument("--submission", help="Path to a JSON submission body")
    parser.add_argument("--origin", default=None, help="Origin header to send")
    parser.add_argument("--timeout", type=float, default=60.0)
    args = parser.parse_args(argv)

    headers = {"Origin": args.origin} if args.origin else {}
    url = f"{args.base_url.rstrip('/')}/api/{args.variant}"
    try:
        resp = httpx.post(url, json=build_payload(args), headers=headers, timeout=args.timeout)
    except httpx.HTTPError as exc:
        print(f"Request failed: {exc}", file=sys.stderr)
        return 2

    try:
        print(json.dumps(resp.json(), indent=2))
    except ValueError:
        print(resp.text)
    return 0 if resp.is_success else 1


if __name__ == "__main__":
    sys.exit(main())
