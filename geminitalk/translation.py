"""Locale-aware message translation through the Gemini ``generateContent`` REST API.

Translation never blocks delivery: every failure path (missing key, network error,
timeout, bad status, malformed or empty response) returns the original text.
"""

import logging

import requests

from .config import Config

logger = logging.getLogger(__name__)

# nationality (locale key) -> language name used in the prompt
LANGUAGES = {
    "Korea": "Korean",
    "USA": "English",
    "Japan": "Japanese",
    "China": "Chinese",
    "Vietnam": "Vietnamese",
    "UK": "English",
}
DEFAULT_LANGUAGE = "English"

PROMPT_TEMPLATE = """
You are a professional translator. Translate the following message naturally.

Original message from {sender_name}: "{text}"

Target language: {language}
Target recipient: {recipient}
Politeness: {politeness}

Rules:
1. Translate naturally, not word-by-word
2. Use appropriate politeness level for the recipient's age
3. Keep the original meaning and emotion
4. If already in the target language, return as-is
5. Only return the translated text, nothing else

Translated message:"""

DETECT_TEMPLATE = (
    'Detect the language of this text and return only the language name in English '
    '(e.g., "Korean", "Vietnamese", "English"): "{text}"'
)


def language_for(nationality):
    return LANGUAGES.get(nationality or "", DEFAULT_LANGUAGE)


def politeness_for(age):
    if age is None:
        return "polite, neutral register"
    if age < 20:
        return "casual and friendly"
    if age < 60:
        return "polite"
    return "most respectful, honorific register"


def gender_label(gender):
    return {"male": "man", "female": "woman"}.get((gender or "").lower(), "person")


def describe_recipient(age, gender):
    label = gender_label(gender)
    return label if age is None else f"{age}-year-old {label}"


def build_prompt(text, target_nationality, target_gender, target_age, sender_name):
    return PROMPT_TEMPLATE.format(
        sender_name=sender_name,
        text=text,
        language=language_for(target_nationality),
        recipient=describe_recipient(target_age, target_gender),
        politeness=politeness_for(target_age),
    )


class TranslationError(Exception):
    pass


class Translator:
    """Single-attempt Gemini client with a bounded wait."""

    def __init__(self, api_key=None, model=None, timeout=None, endpoint=None, session=None):
        self.api_key = Config.GEMINI_API_KEY if api_key is None else api_key
        self.model = model or Config.GEMINI_MODEL
        self.timeout = timeout or Config.TRANSLATE_TIMEOUT
        self.endpoint = (endpoint or Config.GEMINI_ENDPOINT).rstrip("/")
        self.session = session or requests.Session()

    def translate(self, text, target_nationality, target_gender="male", target_age=25, sender_name=""):
        """Return ``text`` translated for the recipient, or ``text`` itself on any failure."""
        if not text or not text.strip():
            return text
        prompt = build_prompt(text, target_nationality, target_gender, target_age, sender_name)
        try:
            translated = self._generate(prompt)
        except TranslationError as e:
            logger.warning("Translation failed, using original text: %s", e)
            return text
        return translated

    def detect_language(self, text):
        try:
            return self._generate(DETECT_TEMPLATE.format(text=text))
        except TranslationError as e:
            logger.warning("Language detection failed: %s", e)
            return "Unknown"

    def _generate(self, prompt):
        if not self.api_key:
            raise TranslationError("GEMINI_API_KEY not configured")
        url = f"{self.endpoint}/models/{self.model}:generateContent"
        body = {"contents": [{"parts": [{"text": prompt}]}]}
        try:
            r = self.session.post(
                url,
                json=body,
                headers={"x-goog-api-key": self.api_key},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TranslationError(f"request error: {e}") from e
        if r.status_code != 200:
            raise TranslationError(f"HTTP {r.status_code}: {r.text[:200]}")
        try:
            data = r.json()
            parts = data["candidates"][0]["content"]["parts"]
            out = "".join(p.get("text", "") for p in parts).strip()
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            raise TranslationError(f"malformed response: {e!r}") from e
        if not out:
            raise TranslationError("empty response")
        return out
