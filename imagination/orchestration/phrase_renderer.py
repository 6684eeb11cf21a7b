# ABOUTME: Renders narrative phrases into one HTML text reply and ordered voice synthesis jobs.
# ABOUTME: Narrator text stays plain, characters get labeled quotes, dice get a result line and spoken summary.

from html import escape

from imagination.models.messages import normalize_whitespace
from imagination.models.phrases import (
    NARRATOR_VOICE,
    DicePhrase,
    Phrase,
    RenderedReply,
    TextPhrase,
    VoiceJob,
)
from imagination.orchestration.response_parser import narrative_phrases
from imagination.utils.dice import spoken_number


def _signed(value: int) -> tuple[str, int]:
    return ("-", -value) if value < 0 else ("+", value)


def render_text_block(phrase: TextPhrase | DicePhrase) -> str:
    """HTML block for a single narrative phrase"""
    if isinstance(phrase, DicePhrase):
        sign, magnitude = _signed(phrase.base_value)
        return (
            f"<blockquote>🎲 <strong>{escape(phrase.speaker_label)}</strong> · "
            f"<em>{escape(phrase.skill_label)}</em>: "
            f"{phrase.roll_result} {sign} {magnitude} = <strong>{phrase.total}</strong>"
            f"</blockquote>"
        )

    if phrase.is_narrator:
        return escape(phrase.text)

    return (
        f"<blockquote><strong>{escape(phrase.speaker_label)}:</strong> "
        f"{escape(phrase.text)}</blockquote>"
    )


def dice_sentence(phrase: DicePhrase) -> str:
    """Spoken summary of a skill check for the narrator voice"""
    direction = "minus" if phrase.base_value < 0 else "plus"
    return (
        f"{phrase.speaker_label} checks {phrase.skill_label}: "
        f"rolled {spoken_number(phrase.roll_result)}, "
        f"{direction} {abs(phrase.base_value)}, total {phrase.total}."
    )


def render_voice_job(phrase: TextPhrase | DicePhrase) -> VoiceJob:
    if isinstance(phrase, DicePhrase):
        return VoiceJob(text=dice_sentence(phrase), voice_id=NARRATOR_VOICE)
    return VoiceJob(text=phrase.text, voice_id=phrase.voice_id)


def render_reply(phrases: list[Phrase]) -> RenderedReply:
    """
    Render a reply's narrative phrases.

    Action phrases are ignored. Text blocks and voice jobs keep phrase order.
    No narrative phrases yields an empty reply.

    Args:
        phrases: Parsed phrases of one backend reply

    Returns:
        RenderedReply with one HTML string and one voice job per narrative phrase
    """
    narrative = narrative_phrases(phrases)

    text = normalize_whitespace("\n".join(render_text_block(phrase) for phrase in narrative))
    voice_jobs = [render_voice_job(phrase) for phrase in narrative]

    return RenderedReply(text=text, voice_jobs=voice_jobs)
