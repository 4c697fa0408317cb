from recap_sensei.utils.logger_utils import setup_logging
from recap_sensei.ai_models.ai_models import get_provider_registry
from recap_sensei.config import config
from recap_sensei.recap_generator.exceptions.recap_exceptions import InputValidationError
from recap_sensei.recap_generator.models.recap_models import GenerationInput
from recap_sensei.recap_generator.models.state_models import Completed
from recap_sensei.recap_generator.pipeline_controller import PipelineController
from recap_sensei.storage.recap_history import create_result_store
from recap_sensei.utils.recap_utils import build_share_url, format_recap_text
from typing import Optional
import asyncio
import os
import sys

from dotenv import load_dotenv

load_dotenv(override=True)

# Set up logging
logger = setup_logging(__name__)


def load_subtitles(subtitles_file: Optional[str], subtitles: Optional[str]) -> Optional[str]:
    """
    Read the dialogue block from a file or take it verbatim.

    Args:
        subtitles_file (Optional[str]): Path to a subtitle/dialogue text file.
        subtitles (Optional[str]): Dialogue passed directly on the command line.

    Returns:
        Optional[str]: The dialogue text, or None if neither was given.
    """
    if subtitles_file:
        with open(subtitles_file, 'r', encoding='utf-8') as f:
            return f.read()
    return subtitles


def generate_recap(anime: Optional[str],
                   episode: Optional[str],
                   dialogue: Optional[str],
                   image_path: Optional[str],
                   save: bool = False,
                   share: bool = False) -> int:
    """
    Run one recap and print it.

    Returns:
        int: Process exit code.
    """
    image_name = os.path.basename(image_path) if image_path else None
    generation_input = GenerationInput.from_raw(
        dialogue_text=dialogue,
        image_name=image_name,
        subject_label=anime,
        episode_label=episode,
    )

    store = create_result_store(config.history_db_url, config.history_max_entries) if save else None
    controller = PipelineController(get_provider_registry(), config, store)
    controller.subscribe(lambda state: logger.info(f"⏳ {state.status_message}") if state.status_message else None)

    try:
        return _run_and_print(controller, generation_input, save, share)
    finally:
        if store is not None:
            store.close()


def _run_and_print(controller: PipelineController,
                   generation_input: GenerationInput,
                   save: bool,
                   share: bool) -> int:
    try:
        outcome = asyncio.run(controller.run(generation_input))
    except InputValidationError as e:
        print(e.user_message, file=sys.stderr)
        return 2

    if outcome is None:
        return 1
    if not isinstance(outcome, Completed):
        error = outcome.error
        print(f"Error: {error.user_message}\n\n{error.remediation_hint}", file=sys.stderr)
        return 1

    print(format_recap_text(outcome.result))

    if share:
        print()
        print(build_share_url(outcome.result.blurb))

    if save and not config.history_auto_save:
        controller.save_result()
        logger.info("Recap saved to history.")
    return 0


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description='Generate an anime episode recap and a shareable blurb')
    parser.add_argument('--anime', help='Anime name')
    parser.add_argument('--episode', help='Episode number (e.g., 12)')
    dialogue_group = parser.add_mutually_exclusive_group()
    dialogue_group.add_argument('--subtitles-file', help='Path to a text file with dialogue/subtitles')
    dialogue_group.add_argument('--subtitles', help='Dialogue/subtitles text')
    parser.add_argument('--image', help='Path to an episode screenshot')
    parser.add_argument('--save', action='store_true', help='Save the recap to history')
    parser.add_argument('--share', action='store_true', help='Print a share link for the blurb')

    args = parser.parse_args()

    logger.info("Starting recap generation.")
    dialogue = load_subtitles(args.subtitles_file, args.subtitles)
    sys.exit(generate_recap(args.anime, args.episode, dialogue, args.image, args.save, args.share))
