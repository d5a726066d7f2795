"""Country, continent and canonical-city helpers."""

from __future__ import annotations

import re
import unicodedata


# (ISO alpha-2, English name, continent)
_COUNTRIES: tuple[tuple[str, str, str], ...] = (
    # Europe
    ("AL", "Albania", "Europe"), ("AD", "Andorra", "Europe"),
    ("AT", "Austria", "Europe"), ("BY", "Belarus", "Europe"),
    ("BE", "Belgium", "Europe"), ("BA", "Bosnia and Herzegovina", "Europe"),
    ("BG", "Bulgaria", "Europe"), ("HR", "Croatia", "Europe"),
    ("CY", "Cyprus", "Europe"), ("CZ", "Czech Republic", "Europe"),
    ("DK", "Denmark", "Europe"), ("EE", "Estonia", "Europe"),
    ("FI", "Finland", "Europe"), ("FR", "France", "Europe"),
    ("DE", "Germany", "Europe"), ("GR", "Greece", "Europe"),
    ("HU", "Hungary", "Europe"), ("IS", "Iceland", "Europe"),
    ("IE", "Ireland", "Europe"), ("IT", "Italy", "Europe"),
    ("XK", "Kosovo", "Europe"), ("LV", "Latvia", "Europe"),
    ("LI", "Liechtenstein", "Europe"), ("LT", "Lithuania", "Europe"),
    ("LU", "Luxembourg", "Europe"), ("MT", "Malta", "Europe"),
    ("MD", "Moldova", "Europe"), ("MC", "Monaco", "Europe"),
    ("ME", "Montenegro", "Europe"), ("NL", "Netherlands", "Europe"),
    ("MK", "North Macedonia", "Europe"), ("NO", "Norway", "Europe"),
    ("PL", "Poland", "Europe"), ("PT", "Portugal", "Europe"),
    ("RO", "Romania", "Europe"), ("RU", "Russia", "Europe"),
    ("SM", "San Marino", "Europe"), ("RS", "Serbia", "Europe"),
    ("SK", "Slovakia", "Europe"), ("SI", "Slovenia", "Europe"),
    ("ES", "Spain", "Europe"), ("SE", "Sweden", "Europe"),
    ("CH", "Switzerland", "Europe"), ("UA", "Ukraine", "Europe"),
    ("GB", "United Kingdom", "Europe"), ("VA", "Vatican City", "Europe"),
    # Asia
    ("AF", "Afghanistan", "Asia"), ("AM", "Armenia", "Asia"),
    ("AZ", "Azerbaijan", "Asia"), ("BH", "Bahrain", "Asia"),
    ("BD", "Bangladesh", "Asia"), ("BT", "Bhutan", "Asia"),
    ("BN", "Brunei", "Asia"), ("KH", "Cambodia", "Asia"),
    ("CN", "China", "Asia"), ("GE", "Georgia", "Asia"),
    ("HK", "Hong Kong", "Asia"), ("IN", "India", "Asia"),
    ("ID", "Indonesia", "Asia"), ("IR", "Iran", "Asia"),
    ("IQ", "Iraq", "Asia"), ("IL", "Israel", "Asia"),
    ("JP", "Japan", "Asia"), ("JO", "Jordan", "Asia"),
    ("KZ", "Kazakhstan", "Asia"), ("KW", "Kuwait", "Asia"),
    ("KG", "Kyrgyzstan", "Asia"), ("LA", "Laos", "Asia"),
    ("LB", "Lebanon", "Asia"), ("MO", "Macau", "Asia"),
    ("MY", "Malaysia", "Asia"), ("MV", "Maldives", "Asia"),
    ("MN", "Mongolia", "Asia"), ("MM", "Myanmar", "Asia"),
    ("NP", "Nepal", "Asia"), ("OM", "Oman", "Asia"),
    ("PK", "Pakistan", "Asia"), ("PH", "Philippines", "Asia"),
    ("QA", "Qatar", "Asia"), ("SA", "Saudi Arabia", "Asia"),
    ("SG", "Singapore", "Asia"), ("KR", "South Korea", "Asia"),
    ("LK", "Sri Lanka", "Asia"), ("TW", "Taiwan", "Asia"),
    ("TJ", "Tajikistan", "Asia"), ("TH", "Thailand", "Asia"),
    ("TR", "Turkey", "Asia"), ("AE", "United Arab Emirates", "Asia"),
    ("UZ", "Uzbekistan", "Asia"), ("VN", "Vietnam", "Asia"),
    # Africa
    ("DZ", "Algeria", "Africa"), ("AO", "Angola", "Africa"),
    ("BW", "Botswana", "Africa"), ("CM", "Cameroon", "Africa"),
    ("CV", "Cape Verde", "Africa"), ("EG", "Egypt", "Africa"),
    ("ET", "Ethiopia", "Africa"), ("GH", "Ghana", "Africa"),
    ("CI", "Ivory Coast", "Africa"), ("KE", "Kenya", "Africa"),
    ("MG", "Madagascar", "Africa"), ("MU", "Mauritius", "Africa"),
    ("MA", "Morocco", "Africa"), ("MZ", "Mozambique", "Africa"),
    ("NA", "Namibia", "Africa"), ("NG", "Nigeria", "Africa"),
    ("RW", "Rwanda", "Africa"), ("SN", "Senegal", "Africa"),
    ("SC", "Seychelles", "Africa"), ("ZA", "South Africa", "Africa"),
    ("TZ", "Tanzania", "Africa"), ("TN", "Tunisia", "Africa"),
    ("UG", "Uganda", "Africa"), ("ZM", "Zambia", "Africa"),
    ("ZW", "Zimbabwe", "Africa"),
    # North America
    ("BS", "Bahamas", "North America"), ("BB", "Barbados", "North America"),
    ("BZ", "Belize", "North America"), ("CA", "Canada", "North America"),
    ("CR", "Costa Rica", "North America"), ("CU", "Cuba", "North America"),
    ("DO", "Dominican Republic", "North America"),
    ("SV", "El Salvador", "North America"), ("GT", "Guatemala", "North America"),
    ("HT", "Haiti", "North America"), ("HN", "Honduras", "North America"),
    ("JM", "Jamaica", "North America"), ("MX", "Mexico", "North America"),
    ("NI", "Nicaragua", "North America"), ("PA", "Panama", "North America"),
    ("PR", "Puerto Rico", "North America"),
    ("TT", "Trinidad and Tobago", "North America"),
    ("US", "United States", "North America"),
    # South America
    ("AR", "Argentina", "South America"), ("BO", "Bolivia", "South America"),
    ("BR", "Brazil", "South America"), ("CL", "Chile", "South America"),
    ("CO", "Colombia", "South America"), ("EC", "Ecuador", "South America"),
    ("GY", "Guyana", "South America"), ("PY", "Paraguay", "South America"),
    ("PE", "Peru", "South America"), ("SR", "Suriname", "South America"),
    ("UY", "Uruguay", "South America"), ("VE", "Venezuela", "South America"),
    # Oceania
    ("AU", "Australia", "Oceania"), ("FJ", "Fiji", "Oceania"),
    ("PF", "French Polynesia", "Oceania"), ("NC", "New Caledonia", "Oceania"),
    ("NZ", "New Zealand", "Oceania"), ("PG", "Papua New Guinea", "Oceania"),
    ("WS", "Samoa", "Oceania"), ("TO", "Tonga", "Oceania"),
    ("VU", "Vanuatu", "Oceania"),
)

_NAME_BY_CODE = {code: name for code, name, _ in _COUNTRIES}
_NAME_BY_LOWER = {name.lower(): name for _, name, _ in _COUNTRIES}
_CONTINENT_BY_NAME = {name.lower(): continent for _, name, continent in _COUNTRIES}

_COUNTRY_ALIASES = {
    "uk": "United Kingdom",
    "u.k.": "United Kingdom",
    "great britain": "United Kingdom",
    "britain": "United Kingdom",
    "england": "United Kingdom",
    "scotland": "United Kingdom",
    "wales": "United Kingdom",
    "northern ireland": "United Kingdom",
    "usa": "United States",
    "u.s.": "United States",
    "u.s.a.": "United States",
    "united states of america": "United States",
    "america": "United States",
    "the netherlands": "Netherlands",
    "holland": "Netherlands",
    "czechia": "Czech Republic",
    "deutschland": "Germany",
    "españa": "Spain",
    "italia": "Italy",
    "schweiz": "Switzerland",
    "suisse": "Switzerland",
    "österreich": "Austria",
    "türkiye": "Turkey",
    "korea": "South Korea",
    "republic of korea": "South Korea",
    "uae": "United Arab Emirates",
    "côte d'ivoire": "Ivory Coast",
    "viet nam": "Vietnam",
}

_ADMIN_PREFIXES = re.compile(
    r"^(?:city of|town of|village of|municipality of|metropolitan city of|"
    r"greater|metropolitan|metro|ville de|comune di|stadt)\s+",
    re.IGNORECASE,
)
_BOROUGH_INFIX = re.compile(r"^(?:(?:royal\s+)?borough|district)\s+of\s+", re.IGNORECASE)
_PARENTHETICAL = re.compile(r"\s*\([^)]*\)")


def country_from_code(code: str) -> str | None:
    code = code.strip().upper()
    if code == "UK":
        code = "GB"
    return _NAME_BY_CODE.get(code)


def canonicalize_country(value: str | None) -> str | None:
    """Map aliases and ISO alpha-2 codes onto English country names."""
    if value is None:
        return None
    cleaned = " ".join(value.split())
    if not cleaned:
        return None
    lowered = cleaned.lower()
    if lowered in _COUNTRY_ALIASES:
        return _COUNTRY_ALIASES[lowered]
    if len(cleaned) == 2 and cleaned.isalpha():
        by_code = country_from_code(cleaned)
        if by_code:
            return by_code
    return _NAME_BY_LOWER.get(lowered, cleaned)


def known_country(value: str | None) -> str | None:
    """Country name only for an explicit alias, name, or upper-case ISO code.

    Unlike ``canonicalize_country`` nothing unrecognized is passed through.
    """
    if value is None:
        return None
    cleaned = " ".join(value.split())
    lowered = cleaned.lower()
    if lowered in _COUNTRY_ALIASES:
        return _COUNTRY_ALIASES[lowered]
    if len(cleaned) == 2 and cleaned.isupper():
        return country_from_code(cleaned)
    return _NAME_BY_LOWER.get(lowered)


def continent_for_country(country: str | None) -> str | None:
    canonical = canonicalize_country(country)
    if canonical is None:
        return None
    return _CONTINENT_BY_NAME.get(canonical.lower())


def clean_city_name(city: str) -> str:
    """Strip parentheticals, admin prefixes and trailing comma segments."""
    cleaned = _PARENTHETICAL.sub("", city)
    cleaned = cleaned.split(",")[0]
    cleaned = " ".join(cleaned.split())
    cleaned = _BOROUGH_INFIX.sub("", cleaned)
    cleaned = _ADMIN_PREFIXES.sub("", cleaned)
    return cleaned.strip()


def slugify(value: str) -> str:
    ascii_value = (
        unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    )
    return re.sub(r"[^a-z0-9]+", "-", ascii_value.lower()).strip("-")


def canonical_city_id(city: str | None, country: str | None) -> str | None:
    """Stable ``city-country`` slug, e.g. ``london-united-kingdom``."""
    if not city or not country:
        return None
    city_part = slugify(clean_city_name(city))
    country_part = slugify(canonicalize_country(country) or "")
    if not city_part or not country_part:
        return None
    return f"{city_part}-{country_part}"
