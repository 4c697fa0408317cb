"""
Helpers for presenting and sharing a finished recap.
"""

from typing import Dict
from urllib.parse import quote

from ..recap_generator.models.recap_models import PipelineResult

SHARE_INTENT_URL = "https://twitter.com/intent/tweet?text="


def build_share_url(blurb: str) -> str:
    """Social intent URL that pre-fills the blurb."""
    return SHARE_INTENT_URL + quote(blurb, safe="")


def format_episode_heading(result: PipelineResult) -> str:
    """e.g. "Frieren - Episode 12: A Hero's Farewell"."""
    anime = result.subject_label or "Unknown"
    episode = result.episode_label or "?"
    title = result.recap.title or "Episode Recap"
    return f"{anime} - Episode {episode}: {title}"


def build_share_payload(result: PipelineResult) -> Dict[str, str]:
    """Title/text pair for a native share capability."""
    return {
        "title": format_episode_heading(result),
        "text": result.blurb,
    }


def format_recap_text(result: PipelineResult) -> str:
    """Render a result as plain text for the terminal or a copy buffer."""
    recap = result.recap
    lines = [format_episode_heading(result), "", recap.summary, "", "Key moments:"]
    lines.extend(f"  {i}. {moment}" for i, moment in enumerate(recap.key_moments, 1))

    lines.append("")
    lines.append("Characters:")
    lines.extend(f"  - {character.name}: {character.action}" for character in recap.characters)

    if recap.plot_progress:
        lines.extend(["", f"Plot progress: {recap.plot_progress}"])
    if recap.cliffhanger:
        lines.extend(["", f"Cliffhanger: {recap.cliffhanger}"])

    lines.extend(["", "Share:", result.blurb])
    return "\n".join(lines)
