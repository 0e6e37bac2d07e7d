"""Best-effort extraction of an event's physical location from market text."""

from __future__ import annotations

import re
from typing import Iterable

from app.domain import Context

STADIUM_CITY_MAP: dict[str, str] = {
    "lambeau": "Green Bay, WI",
    "lambeau field": "Green Bay, WI",
    "arrowhead": "Kansas City, MO",
    "arrowhead stadium": "Kansas City, MO",
    "sofi": "Inglewood, CA",
    "sofi stadium": "Inglewood, CA",
    "nissan": "Nashville, TN",
    "nissan stadium": "Nashville, TN",
    "at&t": "Arlington, TX",
    "at&t stadium": "Arlington, TX",
    "metlife": "East Rutherford, NJ",
    "metlife stadium": "East Rutherford, NJ",
    "gillette": "Foxborough, MA",
    "gillette stadium": "Foxborough, MA",
    "allegiant": "Las Vegas, NV",
    "allegiant stadium": "Las Vegas, NV",
    "lumen": "Seattle, WA",
    "lumen field": "Seattle, WA",
    "empower field": "Denver, CO",
    "hard rock": "Miami, FL",
    "hard rock stadium": "Miami, FL",
    "mercedes-benz": "Atlanta, GA",
    "mercedes benz": "Atlanta, GA",
    "dome": "New Orleans, LA",
    "superdome": "New Orleans, LA",
    "soldier field": "Chicago, IL",
    "millennium": "Chicago, IL",
    "lake shore": "Chicago, IL",
    "wrigley": "Chicago, IL",
    "yankee": "New York, NY",
    "yankee stadium": "New York, NY",
    "fenway": "Boston, MA",
    "fenway park": "Boston, MA",
    "dodger": "Los Angeles, CA",
    "dodger stadium": "Los Angeles, CA",
    "petco": "San Diego, CA",
    "oracle": "San Francisco, CA",
    "oakland": "Oakland, CA",
    "coliseum": "Oakland, CA",
    "angel": "Anaheim, CA",
    "angel stadium": "Anaheim, CA",
    "chase": "San Francisco, CA",
    "colorado": "Denver, CO",
    "coors": "Denver, CO",
    "coors field": "Denver, CO",
    "minute maid": "Houston, TX",
    "minute maid park": "Houston, TX",
    "globe life": "Arlington, TX",
    "rangers": "Arlington, TX",
    "kauffman": "Kansas City, MO",
    "kauffman stadium": "Kansas City, MO",
    "comerica": "Detroit, MI",
    "comerica park": "Detroit, MI",
    "target field": "Minneapolis, MN",
    "busch stadium": "St. Louis, MO",
    "miller park": "Milwaukee, WI",
    "american family": "Milwaukee, WI",
    "great american ball park": "Cincinnati, OH",
    "progressive field": "Cleveland, OH",
    "truist park": "Atlanta, GA",
    "braves": "Atlanta, GA",
    "nationals park": "Washington, DC",
    "mets": "New York, NY",
    "citi field": "New York, NY",
    "citizens bank": "Philadelphia, PA",
    "pirates": "Pittsburgh, PA",
    "pnc park": "Pittsburgh, PA",
}

# Order matters: the first team found in the text wins.
TEAM_CITY_MAP: dict[str, str] = {
    # NFL
    "chiefs": "Kansas City, MO",
    "patriots": "Foxborough, MA",
    "cowboys": "Arlington, TX",
    "packers": "Green Bay, WI",
    "steelers": "Pittsburgh, PA",
    "49ers": "Santa Clara, CA",
    "niners": "Santa Clara, CA",
    "broncos": "Denver, CO",
    "raiders": "Las Vegas, NV",
    "chargers": "Los Angeles, CA",
    "titans": "Nashville, TN",
    "ravens": "Baltimore, MD",
    "bengals": "Cincinnati, OH",
    "browns": "Cleveland, OH",
    "colts": "Indianapolis, IN",
    "jaguars": "Jacksonville, FL",
    "seahawks": "Seattle, WA",
    "lions": "Detroit, MI",
    "bears": "Chicago, IL",
    "vikings": "Minneapolis, MN",
    "buccaneers": "Tampa, FL",
    "bucs": "Tampa, FL",
    "saints": "New Orleans, LA",
    "falcons": "Atlanta, GA",
    "eagles": "Philadelphia, PA",
    "washington": "Washington, DC",
    "commanders": "Washington, DC",
    "giants": "San Francisco, CA",
    "jets": "East Rutherford, NJ",
    "dolphins": "Miami, FL",
    "bills": "Orchard Park, NY",
    "texans": "Houston, TX",
    "cardinals": "St. Louis, MO",
    # NBA
    "lakers": "Los Angeles, CA",
    "celtics": "Boston, MA",
    "warriors": "San Francisco, CA",
    "heat": "Miami, FL",
    "bulls": "Chicago, IL",
    "nets": "Brooklyn, NY",
    "spurs": "London, England",
    "knicks": "New York, NY",
    "suns": "Phoenix, AZ",
    "mavericks": "Dallas, TX",
    "grizzlies": "Memphis, TN",
    "nuggets": "Denver, CO",
    "rockets": "Houston, TX",
    "clippers": "Los Angeles, CA",
    "kings": "Sacramento, CA",
    "trail blazers": "Portland, OR",
    "blazers": "Portland, OR",
    "jazz": "Salt Lake City, UT",
    "timberwolves": "Minneapolis, MN",
    "pelicans": "New Orleans, LA",
    "hawks": "Atlanta, GA",
    "pacers": "Indianapolis, IN",
    "cavaliers": "Cleveland, OH",
    "pistons": "Detroit, MI",
    "raptors": "Toronto, ON",
    "seventy sixers": "Philadelphia, PA",
    "76ers": "Philadelphia, PA",
    "bucks": "Milwaukee, WI",
    "hornets": "Charlotte, NC",
    # MLB
    "yankees": "New York, NY",
    "red sox": "Boston, MA",
    "mets": "New York, NY",
    "phillies": "Philadelphia, PA",
    "braves": "Atlanta, GA",
    "nationals": "Washington, DC",
    "orioles": "Baltimore, MD",
    "rays": "Tampa, FL",
    "blue jays": "Toronto, ON",
    "white sox": "Chicago, IL",
    "indians": "Cleveland, OH",
    "guardians": "Cleveland, OH",
    "tigers": "Detroit, MI",
    "royals": "Kansas City, MO",
    "twins": "Minneapolis, MN",
    "astros": "Houston, TX",
    "mariners": "Seattle, WA",
    "rangers": "Arlington, TX",
    "angels": "Los Angeles, CA",
    "athletics": "Las Vegas, NV",
    "dodgers": "Los Angeles, CA",
    "padres": "San Diego, CA",
    "rockies": "Denver, CO",
    "diamondbacks": "Phoenix, AZ",
    "cubs": "Chicago, IL",
    "brewers": "Milwaukee, WI",
    "pirates": "Pittsburgh, PA",
    "reds": "Cincinnati, OH",
    "marlins": "Miami, FL",
    # English Premier League
    "manchester united": "Manchester, England",
    "man united": "Manchester, England",
    "manchester city": "Manchester, England",
    "man city": "Manchester, England",
    "liverpool": "Liverpool, England",
    "liverpool fc": "Liverpool, England",
    "chelsea": "London, England",
    "chelsea fc": "London, England",
    "arsenal": "London, England",
    "arsenal fc": "London, England",
    "tottenham": "London, England",
    "tottenham hotspur": "London, England",
    "newcastle": "Newcastle, England",
    "newcastle united": "Newcastle, England",
    "brighton": "Brighton, England",
    "brighton hove albion": "Brighton, England",
    "brighton & hove albion": "Brighton, England",
    "crystal palace": "London, England",
    "fulham": "London, England",
    "fulham fc": "London, England",
    "west ham": "London, England",
    "west ham united": "London, England",
    "aston villa": "Birmingham, England",
    "villa": "Birmingham, England",
    "everton": "Liverpool, England",
    "everton fc": "Liverpool, England",
    "leicester": "Leicester, England",
    "leicester city": "Leicester, England",
    "leeds": "Leeds, England",
    "leeds united": "Leeds, England",
    "southampton": "Southampton, England",
    "southampton fc": "Southampton, England",
    "nottingham": "Nottingham, England",
    "nottingham forest": "Nottingham, England",
    "bournemouth": "Bournemouth, England",
    "afc bournemouth": "Bournemouth, England",
    "wolves": "Wolverhampton, England",
    "wolverhampton": "Wolverhampton, England",
    "wolverhampton wanderers": "Wolverhampton, England",
    "brentford": "London, England",
    "brentford fc": "London, England",
    "ipswich": "Ipswich, England",
    "ipswich town": "Ipswich, England",
    # International soccer
    "barcelona": "Barcelona, Spain",
    "real madrid": "Madrid, Spain",
    "atletico madrid": "Madrid, Spain",
    "juventus": "Turin, Italy",
    "ac milan": "Milan, Italy",
    "inter milan": "Milan, Italy",
    "psg": "Paris, France",
    "paris saint-germain": "Paris, France",
    "bayern munich": "Munich, Germany",
    "dortmund": "Dortmund, Germany",
    "ajax": "Amsterdam, Netherlands",
    "psv": "Eindhoven, Netherlands",
}

CITY_ABBREVIATIONS: dict[str, str] = {
    "ny": "New York, NY",
    "la": "Los Angeles, CA",
    "sf": "San Francisco, CA",
    "dc": "Washington, DC",
    "atl": "Atlanta, GA",
    "chi": "Chicago, IL",
    "bos": "Boston, MA",
    "miami": "Miami, FL",
    "denver": "Denver, CO",
    "seattle": "Seattle, WA",
    "phoenix": "Phoenix, AZ",
    "vegas": "Las Vegas, NV",
    "kc": "Kansas City, MO",
}

JUNK_STRINGS = (
    "good faith",
    "the event",
    "this market",
    "shall be",
    "shall resolve",
    "market on",
    "market for",
    "market regarding",
    "in the event",
    "in case of",
    "definition",
    "resolution criteria",
    "terms and conditions",
    "market will",
    "this is a market",
)

SUSPICIOUS_LOCATIONS = frozenset(
    {
        "unknown",
        "null",
        "undefined",
        "n/a",
        "na",
        "none",
        "test",
        "tba",
        "to be announced",
        "online",
        "virtual",
        "worldwide",
        "global",
        "at home",
        "home",
        "away",
        "",
    }
)

_JUNK_PATTERNS = (
    re.compile(r"^(the|this|that|these|those|good|bad|will|shall|is|are|at|home|their|against)$"),
    re.compile(r"event"),
    re.compile(r"market"),
    re.compile(r"shall"),
    re.compile(r"outcome"),
    re.compile(r"legal"),
    re.compile(r"definition"),
    re.compile(r"case"),
    re.compile(r"terms"),
)

_TITLE_AT_PATTERN = re.compile(
    r"\s@\s+([a-z\s]+?)(?:\s+(?:game|match|vs|\?|win|play|nfl|nba|stadium|field))"
)
_TITLE_AT_REJECT = re.compile(r"^(at|sofi|lambeau|arrowhead|home)")
_TITLE_IN_PATTERN = re.compile(
    r"\bin\s+([a-z\s]+?)(?:\s+(?:game|match|vs|\?|win|matchup|against|on|at))"
)
_DESCRIPTION_PATTERNS = (
    re.compile(r"\b(?:in|at)\s+([a-z\s]+?)(?:\s+on\s|\s+at\s|\?|$)"),
    re.compile(r"([a-z\s]+?)\s+(?:stadium|arena|field|court|track)"),
)
_AT_GENERIC = re.compile(r"at\s+(home|the|your|their|a|an)\s")


def is_suspicious_location(location: str) -> bool:
    lowered = location.lower().strip()
    return lowered in SUSPICIOUS_LOCATIONS or len(lowered) < 2


def is_junk_string(text: str | None) -> bool:
    if not text or len(text) < 3:
        return True
    lowered = text.lower()
    if any(junk in lowered for junk in JUNK_STRINGS):
        return True
    return any(pattern.search(lowered) for pattern in _JUNK_PATTERNS)


def normalize_city(city: str | None) -> str | None:
    """Expand abbreviations and title-case a candidate city; ``None`` for junk."""

    if not city:
        return None
    normalized = city.strip()
    abbreviation = CITY_ABBREVIATIONS.get(normalized.lower())
    if abbreviation:
        return abbreviation
    if len(normalized) < 2 or is_suspicious_location(normalized) or is_junk_string(normalized):
        return None
    return " ".join(word[:1].upper() + word[1:] for word in normalized.split(" "))


def _team_city(text: str) -> str | None:
    for team, city in TEAM_CITY_MAP.items():
        if team in text:
            return city
    return None


def extract_stadium(text: str | None) -> str | None:
    if not text:
        return None
    lowered = text.lower()
    if not _AT_GENERIC.search(lowered):
        for stadium, city in STADIUM_CITY_MAP.items():
            if f"at {stadium}" in lowered or f"@{stadium}" in lowered:
                return city
    for stadium, city in STADIUM_CITY_MAP.items():
        if stadium in lowered and re.search(rf"\b{re.escape(stadium)}\b", lowered):
            return city
    return None


def extract_from_title(title: str | None) -> str | None:
    if not title:
        return None
    text = title.lower()

    stadium = extract_stadium(text)
    if stadium:
        return stadium

    at_match = _TITLE_AT_PATTERN.search(text)
    if at_match:
        city = at_match.group(1).strip()
        if len(city) > 3 and not _TITLE_AT_REJECT.match(city):
            normalized = normalize_city(city)
            if normalized and not is_suspicious_location(normalized):
                return normalized

    in_match = _TITLE_IN_PATTERN.search(text)
    if in_match:
        city = in_match.group(1).strip()
        if len(city) > 3 and not is_junk_string(city):
            normalized = normalize_city(city)
            if normalized and not is_suspicious_location(normalized):
                return normalized

    return _team_city(text)


def extract_from_description(description: str | None) -> str | None:
    if not description:
        return None
    text = description.lower()
    if any(text.startswith(junk) for junk in JUNK_STRINGS):
        return None

    stadium = extract_stadium(text)
    if stadium:
        return stadium

    for pattern in _DESCRIPTION_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        city = match.group(1).strip()
        if is_junk_string(city):
            continue
        normalized = normalize_city(city)
        if normalized:
            return normalized

    return _team_city(text)


def extract_from_teams(teams: Iterable[str]) -> str | None:
    for team in teams:
        if not isinstance(team, str):
            continue
        city = _team_city(team.lower())
        if city:
            return city
    return None


def extract_from_tags(tags: Iterable[str]) -> str | None:
    for tag in tags:
        if not tag:
            continue
        normalized = normalize_city(tag.lower())
        if normalized and not is_suspicious_location(normalized):
            return normalized
    return None


def extract_venue(context: Context) -> str | None:
    """Return the most reliable location hint for ``context`` or ``None``.

    Strategies run from most to least reliable: explicit event location,
    title, description, teams, then tags.
    """

    if context.event_location:
        cleaned = context.event_location.strip()
        if len(cleaned) > 2 and not is_suspicious_location(cleaned):
            return cleaned

    for candidate in (
        extract_from_title(context.title),
        extract_from_description(context.description),
        extract_from_teams(context.teams),
        extract_from_tags(context.tags),
    ):
        if candidate:
            return candidate
    return None


def is_valid_venue(venue: str | None) -> bool:
    return bool(venue) and len(venue) > 2 and not is_suspicious_location(venue)


__all__ = [
    "extract_from_description",
    "extract_from_tags",
    "extract_from_teams",
    "extract_from_title",
    "extract_stadium",
    "extract_venue",
    "is_junk_string",
    "is_suspicious_location",
    "is_valid_venue",
    "normalize_city",
]
