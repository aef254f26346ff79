"""Location name to IANA timezone table used when a record carries no timezone tag.

Keys are lower-case. Order matters: the substring fallback returns the first key
found in the location text, scanning in the order below.
"""

from types import MappingProxyType
from typing import Mapping

_ENTRIES: tuple[tuple[str, str], ...] = (
    # US cities
    ("new york", "America/New_York"),
    ("nyc", "America/New_York"),
    ("manhattan", "America/New_York"),
    ("brooklyn", "America/New_York"),
    ("chicago", "America/Chicago"),
    ("los angeles", "America/Los_Angeles"),
    ("la", "America/Los_Angeles"),
    ("san francisco", "America/Los_Angeles"),
    ("sf", "America/Los_Angeles"),
    ("seattle", "America/Los_Angeles"),
    ("denver", "America/Denver"),
    ("phoenix", "America/Phoenix"),
    ("arizona", "America/Phoenix"),
    ("miami", "America/New_York"),
    ("atlanta", "America/New_York"),
    ("dallas", "America/Chicago"),
    ("houston", "America/Chicago"),
    ("austin", "America/Chicago"),
    ("las vegas", "America/Los_Angeles"),
    ("portland", "America/Los_Angeles"),
    ("boston", "America/New_York"),
    ("washington", "America/New_York"),
    ("dc", "America/New_York"),
    # International cities
    ("london", "Europe/London"),
    ("paris", "Europe/Paris"),
    ("berlin", "Europe/Berlin"),
    ("amsterdam", "Europe/Amsterdam"),
    ("rome", "Europe/Rome"),
    ("madrid", "Europe/Madrid"),
    ("barcelona", "Europe/Madrid"),
    ("zurich", "Europe/Zurich"),
    ("vienna", "Europe/Vienna"),
    ("prague", "Europe/Prague"),
    ("stockholm", "Europe/Stockholm"),
    ("copenhagen", "Europe/Copenhagen"),
    ("oslo", "Europe/Oslo"),
    ("helsinki", "Europe/Helsinki"),
    ("dublin", "Europe/Dublin"),
    ("lisbon", "Europe/Lisbon"),
    ("athens", "Europe/Athens"),
    ("moscow", "Europe/Moscow"),
    ("istanbul", "Europe/Istanbul"),
    ("tokyo", "Asia/Tokyo"),
    ("osaka", "Asia/Tokyo"),
    ("seoul", "Asia/Seoul"),
    ("beijing", "Asia/Shanghai"),
    ("shanghai", "Asia/Shanghai"),
    ("hong kong", "Asia/Hong_Kong"),
    ("singapore", "Asia/Singapore"),
    ("mumbai", "Asia/Kolkata"),
    ("delhi", "Asia/Kolkata"),
    ("bangalore", "Asia/Kolkata"),
    ("sydney", "Australia/Sydney"),
    ("melbourne", "Australia/Melbourne"),
    ("brisbane", "Australia/Brisbane"),
    ("perth", "Australia/Perth"),
    ("auckland", "Pacific/Auckland"),
    ("wellington", "Pacific/Auckland"),
    ("toronto", "America/Toronto"),
    ("vancouver", "America/Vancouver"),
    ("montreal", "America/Montreal"),
    ("mexico city", "America/Mexico_City"),
    ("sao paulo", "America/Sao_Paulo"),
    ("rio de janeiro", "America/Sao_Paulo"),
    ("buenos aires", "America/Argentina/Buenos_Aires"),
    ("santiago", "America/Santiago"),
    ("lima", "America/Lima"),
    ("bogota", "America/Bogota"),
    ("caracas", "America/Caracas"),
    ("cape town", "Africa/Johannesburg"),
    ("johannesburg", "Africa/Johannesburg"),
    ("cairo", "Africa/Cairo"),
    ("lagos", "Africa/Lagos"),
    ("nairobi", "Africa/Nairobi"),
    ("casablanca", "Africa/Casablanca"),
    # States and regions
    ("california", "America/Los_Angeles"),
    ("texas", "America/Chicago"),
    ("florida", "America/New_York"),
    ("new york state", "America/New_York"),
    ("illinois", "America/Chicago"),
    ("washington state", "America/Los_Angeles"),
    ("oregon", "America/Los_Angeles"),
    # Countries (major city zone)
    ("usa", "America/New_York"),
    ("united states", "America/New_York"),
    ("uk", "Europe/London"),
    ("united kingdom", "Europe/London"),
    ("england", "Europe/London"),
    ("france", "Europe/Paris"),
    ("germany", "Europe/Berlin"),
    ("italy", "Europe/Rome"),
    ("spain", "Europe/Madrid"),
    ("netherlands", "Europe/Amsterdam"),
    ("switzerland", "Europe/Zurich"),
    ("austria", "Europe/Vienna"),
    ("belgium", "Europe/Brussels"),
    ("sweden", "Europe/Stockholm"),
    ("norway", "Europe/Oslo"),
    ("denmark", "Europe/Copenhagen"),
    ("finland", "Europe/Helsinki"),
    ("ireland", "Europe/Dublin"),
    ("portugal", "Europe/Lisbon"),
    ("greece", "Europe/Athens"),
    ("poland", "Europe/Warsaw"),
    ("japan", "Asia/Tokyo"),
    ("south korea", "Asia/Seoul"),
    ("korea", "Asia/Seoul"),
    ("china", "Asia/Shanghai"),
    ("india", "Asia/Kolkata"),
    ("australia", "Australia/Sydney"),
    ("canada", "America/Toronto"),
    ("mexico", "America/Mexico_City"),
    ("brazil", "America/Sao_Paulo"),
    ("argentina", "America/Argentina/Buenos_Aires"),
    ("chile", "America/Santiago"),
    ("peru", "America/Lima"),
    ("colombia", "America/Bogota"),
    ("venezuela", "America/Caracas"),
    ("south africa", "Africa/Johannesburg"),
    ("egypt", "Africa/Cairo"),
    ("nigeria", "Africa/Lagos"),
    ("kenya", "Africa/Nairobi"),
    ("morocco", "Africa/Casablanca"),
)

LOCATION_TIMEZONES: Mapping[str, str] = MappingProxyType(dict(_ENTRIES))
