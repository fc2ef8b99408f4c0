"""CLI tooling to run recipe generation against OpenRouter locally."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

from healthy_meal.adapters.openrouter.openrouter_client import OpenRouterClient
from healthy_meal.api.exceptions import ClassifiedError
from healthy_meal.config import AppConfig, load_config
from healthy_meal.core.logging_utils import generate_correlation_id, setup_json_logging
from healthy_meal.models.recipe import RecipeSource
from healthy_meal.services.recipe_generator import RecipeGenerator

if TYPE_CHECKING:
    import httpx

logger = logging.getLogger(__name__)

__all__ = ["main", "run_generate_cli"]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Generate a recipe from existing recipes and dietary preferences",
        allow_abbrev=False,
    )
    parser.add_argument(
        "--recipe-file",
        dest="recipe_files",
        action="append",
        type=Path,
        default=[],
        help="Existing recipe: JSON with title/content, or text whose first line is the title.",
    )
    parser.add_argument(
        "--variant",
        action="store_true",
        help="Generate a variant of the single recipe given with --recipe-file.",
    )
    parser.add_argument("--diet", dest="diets", action="append", default=[])
    parser.add_argument("--allergen", dest="allergens", action="append", default=[])
    parser.add_argument("--dislike", dest="disliked", action="append", default=[])
    parser.add_argument("--calories", type=int, help="Target calories per serving.")
    parser.add_argument("--prompt", help="Free-form instructions for the model.")
    parser.add_argument("--model", help="Override the configured recipe model.")
    parser.add_argument("--temperature", type=float)
    parser.add_argument(
        "--list-models",
        action="store_true",
        help="Print the upstream model catalog instead of generating.",
    )
    parser.add_argument(
        "--json-path",
        type=Path,
        help="Write the generated recipe JSON to a file instead of stdout.",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override the configured log level for this session.",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        help="Path to a .env file containing environment variables for the run.",
    )
    return parser.parse_args(argv)


def read_recipe_file(path: Path) -> RecipeSource:
    """Load a recipe from a JSON object or a plain-text file."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        data = json.loads(text)
        if not isinstance(data, dict):
            msg = f"{path}: expected a JSON object with title and content"
            raise SystemExit(msg)
        content = data.get("content")
        if not isinstance(content, str):
            content = json.dumps(data.get("content_json") or content or {}, ensure_ascii=False)
        return RecipeSource(title=str(data.get("title") or ""), content=content)

    title, _, body = text.strip().partition("\n")
    return RecipeSource(title=title.strip(), content=body.strip())


def _load_env_file(path: Path) -> None:
    """Load environment variables from a .env-style file if present."""
    if not path.exists() or not path.is_file():
        return

    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if not key:
            continue
        if value and value[0] == value[-1] and value[0] in {'"', "'"}:
            value = value[1:-1]
        os.environ.setdefault(key, value)


def _prepare_config(args: argparse.Namespace) -> AppConfig:
    """Load configuration, optionally applying CLI overrides."""
    if args.env_file:
        _load_env_file(args.env_file)

    try:
        cfg = load_config()
    except RuntimeError as exc:
        msg = f"Configuration error: {exc}. Set OPENROUTER_API_KEY before running the CLI."
        raise SystemExit(msg) from exc

    if args.log_level:
        cfg = replace(cfg, runtime=cfg.runtime.model_copy(update={"log_level": args.log_level}))
    return cfg


def _emit(payload: Any, json_path: Path | None) -> None:
    text = json.dumps(payload, ensure_ascii=False, indent=2)
    if json_path:
        json_path.write_text(text + "\n", encoding="utf-8")
    else:
        sys.stdout.write(text + "\n")


async def run_generate_cli(
    args: argparse.Namespace,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, Any]:
    """Execute recipe generation based on parsed CLI arguments."""
    cfg = _prepare_config(args)
    setup_json_logging(cfg.runtime.log_level)

    cid = generate_correlation_id()
    recipes = [read_recipe_file(path) for path in args.recipe_files]
    logger.info("cli_generate_started", extra={"cid": cid, "recipes_count": len(recipes)})

    async with OpenRouterClient.from_config(
        cfg.openrouter, cfg.runtime, transport=transport
    ) as client:
        if args.list_models:
            catalog = await client.list_models()
            result: dict[str, Any] = catalog.model_dump()
            _emit(result, args.json_path)
            return result

        generator = RecipeGenerator(client, cfg.recipes)
        options: dict[str, Any] = {
            "custom_prompt": args.prompt,
            "diets": args.diets,
            "allergens": args.allergens,
            "disliked_ingredients": args.disliked,
            "calorie_target": args.calories,
            "model": args.model,
            "temperature": args.temperature,
        }
        if args.variant:
            if len(recipes) != 1:
                msg = "--variant needs exactly one --recipe-file"
                raise SystemExit(msg)
            result = await generator.generate_recipe_variant(recipes[0], **options)
        else:
            result = await generator.generate_recipe_from_existing(recipes, **options)

    logger.info("cli_generate_completed", extra={"cid": cid, "title": result.get("title")})
    _emit(result, args.json_path)
    return result


def main(argv: list[str] | None = None) -> int:
    """Entry point for ``python -m healthy_meal.cli.generate``."""
    args = parse_args(argv)
    try:
        asyncio.run(run_generate_cli(args))
    except KeyboardInterrupt:  # pragma: no cover - user cancelled
        return 1
    except ClassifiedError as exc:
        sys.stderr.write(json.dumps(exc.to_response_body(), ensure_ascii=False) + "\n")
        return 1
    except Exception as exc:
        logger.exception("cli_generate_failed", exc_info=exc)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
