"""
LinguaLens - Supported Languages
================================
Languages offered for translation, keyed by ISO 639-1 code.
"""

from typing import NamedTuple, Optional


class Language(NamedTuple):
    code: str
    name: str
    native_name: Optional[str] = None


COMMON_LANGUAGES: tuple[Language, ...] = (
    Language("en", "English", "English"),
    Language("es", "Spanish", "Español"),
    Language("fr", "French", "Français"),
    Language("de", "German", "Deutsch"),
    Language("zh", "Chinese", "中文"),
    Language("ar", "Arabic", "العربية"),
    Language("hi", "Hindi", "हिन्दी"),
    Language("bn", "Bengali", "বাংলা"),
    Language("pt", "Portuguese", "Português"),
    Language("ru", "Russian", "Русский"),
    Language("ja", "Japanese", "日本語"),
    Language("ko", "Korean", "한국어"),
    # Caucasus and Persian-script
    Language("hy", "Armenian", "Հայերեն"),
    Language("ka", "Georgian", "ქართული"),
    Language("az", "Azerbaijani", "Azərbaycan"),
    Language("fa", "Persian", "فارسی"),
    Language("ur", "Urdu", "اردو"),
    # Europe
    Language("it", "Italian", "Italiano"),
    Language("nl", "Dutch", "Nederlands"),
    Language("el", "Greek", "Ελληνικά"),
    Language("pl", "Polish", "Polski"),
    Language("tr", "Turkish", "Türkçe"),
    Language("uk", "Ukrainian", "Українська"),
    Language("bg", "Bulgarian", "Български"),
    Language("sr", "Serbian", "Српски"),
    Language("hr", "Croatian", "Hrvatski"),
    Language("cs", "Czech", "Čeština"),
    Language("sk", "Slovak", "Slovenčina"),
    Language("hu", "Hungarian", "Magyar"),
    Language("ro", "Romanian", "Română"),
    Language("sv", "Swedish", "Svenska"),
    Language("da", "Danish", "Dansk"),
    Language("fi", "Finnish", "Suomi"),
    Language("no", "Norwegian", "Norsk"),
    Language("is", "Icelandic", "Íslenska"),
    # Asia
    Language("th", "Thai", "ไทย"),
    Language("vi", "Vietnamese", "Tiếng Việt"),
    Language("id", "Indonesian", "Bahasa Indonesia"),
    Language("ms", "Malay", "Bahasa Melayu"),
    Language("tl", "Filipino", "Filipino"),
    Language("km", "Khmer", "ខ្មែរ"),
    Language("my", "Burmese", "မြန်မာ"),
    Language("lo", "Lao", "ລາວ"),
    Language("mn", "Mongolian", "Монгол"),
    # Middle East
    Language("he", "Hebrew", "עברית"),
    Language("ku", "Kurdish", "کوردی"),
    Language("am", "Amharic", "አማርኛ"),
    # Africa
    Language("sw", "Swahili", "Kiswahili"),
    Language("ha", "Hausa", "Hausa"),
    Language("yo", "Yoruba", "Yorùbá"),
    Language("ig", "Igbo", "Igbo"),
    # South Asia
    Language("gu", "Gujarati", "ગુજરાતી"),
    Language("kn", "Kannada", "ಕನ್ನಡ"),
    Language("ml", "Malayalam", "മലയാളം"),
    Language("mr", "Marathi", "मराठी"),
    Language("ne", "Nepali", "नेपाली"),
    Language("pa", "Punjabi", "ਪੰਜਾਬੀ"),
    Language("ta", "Tamil", "தமிழ்"),
    Language("te", "Telugu", "తెలుగు"),
)

_BY_CODE = {language.code: language for language in COMMON_LANGUAGES}


def base_code(code: str) -> str:
    """'en-US' -> 'en'."""
    return (code or "").strip().split("-")[0].split("_")[0].lower()


def get_language(code: str) -> Optional[Language]:
    return _BY_CODE.get(base_code(code))


def is_supported(code: str) -> bool:
    return get_language(code) is not None


def language_name(code: str) -> str:
    """English name for prompts, falling back to the raw code."""
    language = get_language(code)
    return language.name if language else code
