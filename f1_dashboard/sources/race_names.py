"""
Japanese <-> English Grand Prix names.

Wikipedia (ja) tables give Japanese names only and the historical API gives
English names only; this table bridges the two for the bilingual Race shape.
"""
from typing import Optional

# Japanese stem (without "GP"/"グランプリ") -> English name
GRAND_PRIX_NAMES: dict[str, str] = {
    "バーレーン": "Bahrain Grand Prix",
    "サウジアラビア": "Saudi Arabian Grand Prix",
    "オーストラリア": "Australian Grand Prix",
    "日本": "Japanese Grand Prix",
    "中国": "Chinese Grand Prix",
    "マイアミ": "Miami Grand Prix",
    "エミリア・ロマーニャ": "Emilia Romagna Grand Prix",
    "モナコ": "Monaco Grand Prix",
    "カナダ": "Canadian Grand Prix",
    "スペイン": "Spanish Grand Prix",
    "オーストリア": "Austrian Grand Prix",
    "シュタイアーマルク": "Styrian Grand Prix",
    "イギリス": "British Grand Prix",
    "70周年記念": "70th Anniversary Grand Prix",
    "ハンガリー": "Hungarian Grand Prix",
    "ベルギー": "Belgian Grand Prix",
    "オランダ": "Dutch Grand Prix",
    "イタリア": "Italian Grand Prix",
    "トスカーナ": "Tuscan Grand Prix",
    "アゼルバイジャン": "Azerbaijan Grand Prix",
    "シンガポール": "Singapore Grand Prix",
    "ロシア": "Russian Grand Prix",
    "アイフェル": "Eifel Grand Prix",
    "ポルトガル": "Portuguese Grand Prix",
    "トルコ": "Turkish Grand Prix",
    "アメリカ": "United States Grand Prix",
    "メキシコシティ": "Mexico City Grand Prix",
    "メキシコ": "Mexican Grand Prix",
    "サンパウロ": "São Paulo Grand Prix",
    "ブラジル": "Brazilian Grand Prix",
    "ラスベガス": "Las Vegas Grand Prix",
    "カタール": "Qatar Grand Prix",
    "サヒール": "Sakhir Grand Prix",
    "アブダビ": "Abu Dhabi Grand Prix",
    "フランス": "French Grand Prix",
    "ドイツ": "German Grand Prix",
    "マレーシア": "Malaysian Grand Prix",
    "韓国": "Korean Grand Prix",
    "インド": "Indian Grand Prix",
    "ヨーロッパ": "European Grand Prix",
}

_ENGLISH_TO_STEM = {en: stem for stem, en in GRAND_PRIX_NAMES.items()}

_SUFFIXES = ("グランプリ", "GP")


def _stem(name_ja: str) -> str:
    stem = name_ja.strip()
    for suffix in _SUFFIXES:
        if stem.endswith(suffix):
            stem = stem[: -len(suffix)]
            break
    # Wikipedia article titles carry a "2024年" prefix
    if "年" in stem and stem.split("年", 1)[0].isdigit():
        stem = stem.split("年", 1)[1]
    return stem.strip()


def english_name(name_ja: Optional[str]) -> Optional[str]:
    """English name for a Japanese Grand Prix name, if known."""
    if not name_ja:
        return None
    return GRAND_PRIX_NAMES.get(_stem(name_ja))


def japanese_name(name_en: Optional[str]) -> Optional[str]:
    """Japanese display name (``"日本GP"`` style) for an English name, if known."""
    if not name_en:
        return None
    stem = _ENGLISH_TO_STEM.get(name_en.strip())
    return f"{stem}GP" if stem else None


def japanese_article_title(name_ja: str) -> str:
    """Wikipedia (ja) article stem for a race, e.g. ``"日本GP"`` -> ``"日本グランプリ"``."""
    return f"{_stem(name_ja)}グランプリ"
