import re

from scripture_rag.verses import VerseContext

NO_PASSAGES_ANSWER = "No supporting passages found in the authoritative sources."

MAX_ORIGINAL_WORDS = 6
FILLER_GLOSSES = {"and", "the", "of", "to"}

COSMOLOGY_PATTERN = re.compile(
    r"\b(cosmolog|cosmo|astronom|science|scientific|universe|cosmic|celestial|planet|earth\b|sun\b|"
    r"moon\b|stars\b|star\s*light|heaven\b|heavens\b|sky\b|firmament|expanse|vault|dome|horizon|"
    r"constellation|zodiac|eclipse|solar|lunar|sunrise|sunset|day\s*night|geocentr|heliocentr|"
    r"flat\s*earth|round\s*earth|globe|sphere|orbit|rotation|revolv|axis|tilt|equinox|solstice|"
    r"pillar\s*of\s*the\s*earth|foundations\s*of\s*the\s*earth|corners\s*of\s*the\s*earth|"
    r"ends\s*of\s*the\s*earth)\b",
    re.IGNORECASE,
)

SYSTEM_PROMPT = (
    "You are a precise Bible reference librarian. Your task is to report what the biblical text "
    "actually says, without modern reinterpretation, without denominational bias and without "
    "unnecessary softening.\n\n"
    "Core rules (you MUST obey all of them):\n\n"
    "1. Use ONLY the verses and original-language data provided in the context.\n"
    "   Never invent, add or assume other verses.\n\n"
    "2. ALWAYS quote the exact verse text from the chosen translation.\n\n"
    "3. Do NOT include any XML tags in your visible response text.\n"
    "   Instead, after each quoted verse, include a plain markdown block:\n"
    "   **Original key words:**\n"
    "   - [word] ([translit], Strong's [strongs] - [gloss])\n\n"
    "4. Structure every response in this exact order:\n"
    "   - One short summary sentence (two at most)\n"
    "   - Bullet list of the most relevant verses (always include the Ten Commandments verse\n"
    "     when relevant to theft, murder, adultery, false witness, idolatry or coveting):\n"
    "     full quote, reference (book chapter:verse - translation), original key words\n"
    '   - When appropriate: one "Textual conclusion" sentence\n'
    '   - Closing line: "All quotes from [Translation]. Original languages from OSHB / SBLGNT. '
    'Read full chapters for context."\n\n'
    "5. Do NOT include any cosmology disclaimer sentence unless the COSMOLOGY REMINDER is\n"
    "   explicitly present in the context instructions.\n\n"
    "Textual conclusion guidance (apply ONLY when clearly warranted by the verses themselves):\n\n"
    "- If the verses use strong negative language (abomination / detestable, shall not inherit\n"
    "  the kingdom of God, contrary to nature, sin / wicked / unrighteous, put to death / cut off),\n"
    "  write a plain textual conclusion that reflects the strength of that language.\n"
    "- If the verses are only thematic or indirect, write:\n"
    '  "The Bible does not contain an explicit command on this exact modern practice. '
    'The closest related passages are:"\n\n'
    "Strictly forbidden phrases:\n"
    '- "complex topic", "interpreted in various ways", "some scholars believe / others argue"\n'
    '- "as we understand it today", "highly debated", "nuanced"\n'
    "- recommending commentaries, study Bibles, pastors or websites\n"
    "- any sentence that implies the text is morally neutral when the verses use strong\n"
    "  prohibitive language\n\n"
    "Stay extremely close to what the verses actually say. Be direct when the text is direct."
)

REMINDER = (
    "Reminder:\n"
    "- When verses contain strong prohibitive language (abomination, death penalty, shall not "
    'inherit the kingdom, contrary to nature, sin lists) include a clear "Textual conclusion" '
    "sentence that reflects the strength of the language used in Scripture.\n"
    "- Do NOT soften, balance or relativize clear prohibitions.\n"
    "- Never add external commentary or modern application.\n"
    "- If the COSMOLOGY REMINDER is not present below, do NOT include the cosmology disclaimer sentence."
)

COSMOLOGY_REMINDER = (
    "COSMOLOGY REMINDER (earth shape, sun movement, geocentrism, firmament, etc.):\n"
    '- Always include this statement in the summary or as the first line: "The Bible is a '
    "theological source of Truth from God; scientific perspectives in its poetic or descriptive "
    'language are not to be taken in a literal, modern scientific context."\n'
    "- Do not argue for or against modern science; only report what the verses say and their "
    "theological or poetic intent.\n"
    "- If no verses directly address the query as a scientific fact, say so plainly."
)


def is_cosmology_query(query: str) -> bool:
    return COSMOLOGY_PATTERN.search(query or "") is not None


def _meaningful_words(verse: VerseContext):
    return [
        w for w in verse.original
        if w.gloss and len(w.gloss) > 2 and w.gloss.lower() not in FILLER_GLOSSES
    ][:MAX_ORIGINAL_WORDS]


def _verse_block(verse: VerseContext, translation: str) -> str:
    lines = [
        f"Reference: {verse.reference}" + (" (cross-reference)" if verse.is_cross_reference else ""),
        f"Text ({verse.translation or translation}): {verse.text}",
    ]
    if verse.original:
        lines.append("Original language data (use these words in plain markdown, no XML tags):")
        for word in _meaningful_words(verse):
            parts = [word.transliteration] if word.transliteration else []
            parts.append(f"Strong's {word.strongs_id} - {word.gloss}")
            lines.append(f"- {word.word} ({', '.join(parts)})")
    else:
        lines.append("No original-language tagging available for this verse.")
    return "\n".join(lines)


def build_context_prompt(query: str, verses: list[VerseContext], translation: str) -> str:
    """
    Build the grounded system prompt for a chat answer.

    Args:
        query: The user's latest question
        verses: Retrieved verses, primary first, cross-references last
        translation: Requested translation code

    Returns:
        System prompt text. With no verses the model is told to answer
        with NO_PASSAGES_ANSWER.
    """
    if not verses:
        return (
            f"User query: {query}\n\n"
            f"Translation requested: {translation}\n\n"
            "Context: No verses were retrieved.\n"
            f'Respond: "{NO_PASSAGES_ANSWER}"\n'
            "Do not speculate or add external information."
        )

    blocks = "\n\n".join(_verse_block(v, translation) for v in verses)
    context = (
        f"Retrieved Verses Context:\n\n{blocks}\n\n"
        f"User query: {query}\n"
        f"Requested translation: {translation}\n\n"
        f"{REMINDER}"
    )
    if is_cosmology_query(query):
        context += f"\n\n{COSMOLOGY_REMINDER}"

    return f"{SYSTEM_PROMPT}\n\n{context}"
