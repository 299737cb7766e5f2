import re
from datetime import datetime, timezone
from typing import Any

# PostgREST supprime les zéros de fin des fractions de seconde ("07:30:00.12345+00:00"),
# format refusé par datetime.fromisoformat avant Python 3.11.
_FRACTION = re.compile(r"\.(\d+)")

def _pad_fraction(match: "re.Match[str]") -> str:
    return "." + match.group(1)[:6].ljust(6, "0")

def parse_timestamp(value: Any) -> datetime:
    """
    Horodatage ISO 8601 (Supabase/PostgREST ou isoformat()) -> datetime conscient du fuseau.
    - 'Z' accepté, fraction ramenée à 6 chiffres, UTC par défaut si aucun fuseau.
    - ValueError si la valeur est illisible.
    """
    if isinstance(value, datetime):
        ts = value
    else:
        text = str(value).strip().replace("Z", "+00:00").replace(" ", "T", 1)
        ts = datetime.fromisoformat(_FRACTION.sub(_pad_fraction, text, count=1))
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)
