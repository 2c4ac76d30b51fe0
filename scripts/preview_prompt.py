import argparse
import os
from typing import List, Optional

from dotenv import load_dotenv

from backstory.backend.adapters.perspective_adapter import score_text
from backstory.common.errors import BackstoryError, InappropriateStoryError
from backstory.common.logs import setup_logging
from backstory.common.paths import env_file
from backstory.story.generation import TEXT_GEN_URLS, EndpointPool, TextGenerator
from backstory.story.pipeline import generate_final_story
from backstory.story.prompt_manager import generate_prompt


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Build a backstory prompt from image keywords."
    )
    parser.add_argument("keywords", nargs="*", help="Image labels, e.g. dog cat 'oak tree'")
    parser.add_argument("--location", action="append", default=[], help="Landmark name")
    parser.add_argument("--random", action="store_true", help="Pick templates at random")
    parser.add_argument(
        "--generate", action="store_true", help="Also request a story and run the toxicity gate"
    )
    parser.add_argument("--max-length", type=int, default=200)
    parser.add_argument("--temperature", type=float, default=0.7)
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    load_dotenv(dotenv_path=env_file())
    setup_logging("DEBUG" if args.verbose else os.getenv("LOG_LEVEL", "WARNING"))

    prompt = generate_prompt(args.keywords, args.location, randomize=args.random)
    print(f"Prompt: {prompt}")
    if not args.generate:
        return 0

    generator = TextGenerator(EndpointPool(TEXT_GEN_URLS))
    try:
        story = generate_final_story(
            prompt,
            args.max_length,
            args.temperature,
            generator=generator,
            scorer=score_text,
        )
    except InappropriateStoryError as e:
        print(f"Story rejected by the toxicity gate: {e}")
        return 1
    except (BackstoryError, ValueError) as e:
        print(f"Generation failed: {e}")
        return 1
    print()
    print(story)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
