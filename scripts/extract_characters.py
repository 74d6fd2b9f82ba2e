#!/usr/bin/env python3
"""
CLI for one-shot structured extraction of Star Wars characters.

Usage examples:
  python extract_characters.py
  python extract_characters.py --era "Old Republic"

Prints the validated roster as JSON. On a validation failure the raw model
output is printed to stderr and the exit code is 1; other failures exit 2.
"""
import argparse
import json
import sys
from pathlib import Path

# Add parent directory to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.errors import OutputValidationError, RelayError
from app.core.logging import get_logger
from app.models.extraction import CharacterRoster, build_roster_prompt
from app.services.prompt_relay import get_prompt_relay

logger = get_logger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Extract Star Wars characters as structured JSON")
    parser.add_argument("--era", "-e", default="Galactic Civil War", help="Era the characters belong to")

    args = parser.parse_args()

    logger.info("Generating content with structured output...")

    try:
        relay = get_prompt_relay()
        roster = relay.handle(build_roster_prompt(args.era), output_model=CharacterRoster)
    except OutputValidationError as e:
        logger.error("Error during JSON parsing or schema validation: %s", e)
        print(json.dumps(e.errors, indent=2, default=str), file=sys.stderr)
        print(f"Received raw JSON text: {e.raw_text}", file=sys.stderr)
        return 1
    except RelayError as e:
        logger.error("Extraction failed: %s", e)
        print(json.dumps({"status": "error", "message": str(e)}))
        return 2

    print(roster.model_dump_json(indent=2))
    logger.info("JSON output successfully parsed and validated")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
