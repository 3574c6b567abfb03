from typing import List, Tuple

DEFAULT_LANGUAGE = "English"

# checked in order, first match wins
LANGUAGE_SIGNATURES: List[Tuple[str, Tuple[str, ...]]] = [
    ("German", ("ü", "ö", "ä", "ß", " der ", " das ", " ein ", "zutaten")),
    ("French", ("é", "è", "ê", "à", " le ", " la ", " les ", "ingrédients")),
    ("Spanish", ("ñ", "¿", "¡", " el ", " los ", " las ", "ingredientes")),
    ("Chinese", ("维生素", "蛋白质", "脂肪", "碳水化合物")),
]


def detect_language(text: str) -> str:
    """Guess the label language from diacritics, stop words and script."""
    lowered = (text or "").lower()
    for language, signatures in LANGUAGE_SIGNATURES:
        if any(signature in lowered for signature in signatures):
            return language
    return DEFAULT_LANGUAGE
