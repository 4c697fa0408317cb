# prompts.py

from langchain_core.prompts import PromptTemplate
from textwrap import dedent

from .models.recap_models import GenerationInput, RecapRecord

# ==============================
# Condense
# ==============================

CONDENSE_PROMPT = PromptTemplate.from_template(dedent("""\
Extract the key dialogue and events from this episode transcript, keeping important plot points:

{text}"""))

# ==============================
# Recap
# ==============================

RECAP_OUTPUT_SCHEMA = dedent("""\
{{
  "episodeTitle": "A catchy title for this episode based on events",
  "summary": "2-3 sentence overview of what happened this episode",
  "keyMoments": [
    "First major event or revelation",
    "Second major event or revelation",
    "Third major event or revelation"
  ],
  "characters": [
    {{"name": "Character Name", "action": "What they did this episode"}},
    {{"name": "Character Name", "action": "What they did this episode"}}
  ],
  "plotProgress": "How did the main story arc advance? What changed?",
  "cliffhanger": "What question/tension will carry to next episode? Or 'None' if episode wrapped up"
}}""")

RECAP_GUIDELINES = dedent("""\
IMPORTANT GUIDELINES:
- This is an EPISODE RECAP, not a scene description
- Focus on STORY PROGRESSION and PLOT DEVELOPMENTS
- Include character actions that MATTER to the story
- Highlight TWISTS, REVELATIONS, or IMPORTANT DECISIONS
- Key moments should be story beats, not visual descriptions
- Think like you're explaining to someone who missed the episode
- Be specific about what happened, not just what was shown""")

RECAP_PROMPT = PromptTemplate.from_template(
    "You are RecapSensei, an anime episode recap specialist. "
    "Generate a comprehensive episode recap for anime viewers.\n\n"
    "ANIME: {anime}\n"
    "EPISODE: {episode}\n"
    "{screenshot_line}\n"
    "{dialogue_block}\n\n"
    "Create a detailed episode recap in JSON format with this structure:\n"
    + RECAP_OUTPUT_SCHEMA
    + "\n\n"
    + RECAP_GUIDELINES
    + "\n\nOutput ONLY valid JSON."
)

# ==============================
# Blurb
# ==============================

BLURB_PROMPT = PromptTemplate.from_template(dedent("""\
Create an exciting, spoiler-free social post (under {max_chars} characters) about {anime} Episode {episode}.
Summary: {summary}
Rules:
- The post MUST be under {max_chars} characters in total.
- Do NOT reveal twists, deaths, identities or the ending. Tease, don't spoil.
- Make it hype and intriguing! Add 1-2 emojis.
Output only the post text, without quotes or JSON."""))


def build_condense_prompt(text: str) -> str:
    """Prompt asking the general model to condense a long dialogue block."""
    return CONDENSE_PROMPT.format(text=text)


def build_recap_prompt(generation_input: GenerationInput) -> str:
    """
    Render the recap prompt for the given input.

    Screenshot and dialogue presence are both stated explicitly so the model
    knows what it was (not) given. Only the screenshot's file name is passed.
    """
    if generation_input.image_present:
        screenshot_line = f"SCREENSHOT: Provided ({generation_input.image_name or 'unnamed image'})"
    else:
        screenshot_line = "NO SCREENSHOT"

    if generation_input.has_dialogue:
        dialogue_block = f"DIALOGUE/EVENTS:\n{generation_input.dialogue_text}"
    else:
        dialogue_block = "NO DIALOGUE PROVIDED"

    return RECAP_PROMPT.format(
        anime=generation_input.subject_label or "Unknown",
        episode=generation_input.episode_label or "Unknown",
        screenshot_line=screenshot_line,
        dialogue_block=dialogue_block,
    )


def build_blurb_prompt(recap: RecapRecord, generation_input: GenerationInput, max_chars: int = 280) -> str:
    """Prompt for the shareable blurb, with a hard character ceiling and no spoilers."""
    return BLURB_PROMPT.format(
        max_chars=max_chars,
        anime=generation_input.subject_label or "this anime",
        episode=generation_input.episode_label or "?",
        summary=recap.summary,
    )
