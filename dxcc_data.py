"""
DXCC prefix data and helper functions.

Maps callsign prefixes to CQ zone, ITU zone and continent, and to a typical
grid square so that spots without locators can still be placed on the map.
Lookups try the longest prefix first (4, 3, 2, then 1 characters).
"""

import re
from typing import Dict, Optional, Tuple

from utils.geocoding import grid_to_latlon

# Prefix -> (cq_zone, itu_zone, continent)
PREFIX_ZONES: Dict[str, Tuple[int, int, str]] = {
    # North America
    'W': (5, 8, 'NA'), 'K': (5, 8, 'NA'), 'N': (5, 8, 'NA'), 'AA': (5, 8, 'NA'),
    'VE': (5, 4, 'NA'), 'VA': (5, 4, 'NA'),
    'XE': (6, 10, 'NA'), 'XF': (6, 10, 'NA'),
    # Europe
    'G': (14, 27, 'EU'), 'M': (14, 27, 'EU'), 'F': (14, 27, 'EU'),
    'DL': (14, 28, 'EU'), 'DJ': (14, 28, 'EU'), 'DK': (14, 28, 'EU'),
    'PA': (14, 27, 'EU'), 'ON': (14, 27, 'EU'), 'EA': (14, 37, 'EU'),
    'I': (15, 28, 'EU'), 'SP': (15, 28, 'EU'), 'OK': (15, 28, 'EU'),
    'OM': (15, 28, 'EU'), 'HA': (15, 28, 'EU'), 'OE': (15, 28, 'EU'),
    'HB': (14, 28, 'EU'), 'SM': (14, 18, 'EU'), 'LA': (14, 18, 'EU'),
    'OH': (15, 18, 'EU'), 'OZ': (14, 18, 'EU'),
    'UA': (16, 29, 'EU'), 'RA': (16, 29, 'EU'), 'RU': (16, 29, 'EU'), 'RW': (16, 29, 'EU'),
    'UR': (16, 29, 'EU'), 'UT': (16, 29, 'EU'),
    'YU': (15, 28, 'EU'), 'YT': (15, 28, 'EU'), 'LY': (15, 29, 'EU'),
    'ES': (15, 29, 'EU'), 'YL': (15, 29, 'EU'), 'EI': (14, 27, 'EU'),
    'GI': (14, 27, 'EU'), 'GW': (14, 27, 'EU'), 'GM': (14, 27, 'EU'),
    'CT': (14, 37, 'EU'), 'SV': (20, 28, 'EU'), '9A': (15, 28, 'EU'),
    'S5': (15, 28, 'EU'), 'LZ': (20, 28, 'EU'), 'YO': (20, 28, 'EU'),
    # Asia
    'JA': (25, 45, 'AS'), 'JH': (25, 45, 'AS'), 'JR': (25, 45, 'AS'), 'JE': (25, 45, 'AS'),
    'JF': (25, 45, 'AS'), 'JG': (25, 45, 'AS'), 'JI': (25, 45, 'AS'), 'JJ': (25, 45, 'AS'),
    'JK': (25, 45, 'AS'), 'JL': (25, 45, 'AS'), 'JM': (25, 45, 'AS'), 'JN': (25, 45, 'AS'),
    'JO': (25, 45, 'AS'), 'JP': (25, 45, 'AS'), 'JQ': (25, 45, 'AS'), 'JS': (25, 45, 'AS'),
    'HL': (25, 44, 'AS'), 'DS': (25, 44, 'AS'), 'BY': (24, 44, 'AS'), 'BV': (24, 44, 'AS'),
    'VU': (22, 41, 'AS'), '9M': (28, 54, 'AS'), 'HS': (26, 49, 'AS'), 'XV': (26, 49, 'AS'),
    'DU': (27, 50, 'OC'),
    # Oceania
    'VK': (30, 59, 'OC'), 'VK9': (30, 60, 'OC'), 'ZL': (32, 60, 'OC'), 'FK': (32, 56, 'OC'),
    'YB': (28, 51, 'OC'), 'KH6': (31, 61, 'OC'), 'KH2': (27, 64, 'OC'),
    # South America
    'LU': (13, 14, 'SA'), 'PY': (11, 15, 'SA'), 'CE': (12, 14, 'SA'), 'CX': (13, 14, 'SA'),
    'HK': (9, 12, 'SA'), 'YV': (9, 12, 'SA'), 'HC': (10, 12, 'SA'), 'OA': (10, 12, 'SA'),
    # Africa
    'ZS': (38, 57, 'AF'), '5N': (35, 46, 'AF'), 'EA8': (33, 36, 'AF'), 'CN': (33, 37, 'AF'),
    '7X': (33, 37, 'AF'), 'SU': (34, 38, 'AF'), 'ST': (34, 47, 'AF'), 'ET': (37, 48, 'AF'),
    '5Z': (37, 48, 'AF'), '5H': (37, 53, 'AF'),
    # Caribbean
    'VP5': (8, 11, 'NA'), 'PJ': (9, 11, 'SA'), 'HI': (8, 11, 'NA'), 'CO': (8, 11, 'NA'),
    'KP4': (8, 11, 'NA'), 'FG': (8, 11, 'NA'),
    # Antarctica
    'DP0': (38, 67, 'AN'), 'VP8': (13, 73, 'AN'), 'KC4': (13, 67, 'AN'),
}

# First character -> (cq_zone, itu_zone, continent) when no prefix matches
FALLBACK_ZONES: Dict[str, Tuple[int, int, str]] = {
    'A': (21, 39, 'AS'), 'B': (24, 44, 'AS'), 'C': (14, 27, 'EU'), 'D': (14, 28, 'EU'),
    'E': (14, 27, 'EU'), 'F': (14, 27, 'EU'), 'G': (14, 27, 'EU'), 'H': (14, 27, 'EU'),
    'I': (15, 28, 'EU'), 'J': (25, 45, 'AS'), 'K': (5, 8, 'NA'), 'L': (13, 14, 'SA'),
    'M': (14, 27, 'EU'), 'N': (5, 8, 'NA'), 'O': (15, 18, 'EU'), 'P': (11, 15, 'SA'),
    'R': (16, 29, 'EU'), 'S': (15, 28, 'EU'), 'T': (37, 48, 'AF'), 'U': (16, 29, 'EU'),
    'V': (5, 4, 'NA'), 'W': (5, 8, 'NA'), 'X': (6, 10, 'NA'), 'Y': (15, 28, 'EU'),
    'Z': (38, 57, 'AF'),
}

# Prefix -> (typical grid, country)
PREFIX_GRIDS: Dict[str, Tuple[str, str]] = {
    # Canada
    'VE1': ('FN74', 'Canada'), 'VA1': ('FN74', 'Canada'),
    'VE2': ('FN35', 'Canada'), 'VA2': ('FN35', 'Canada'),
    'VE3': ('FN03', 'Canada'), 'VA3': ('FN03', 'Canada'),
    'VE4': ('EN19', 'Canada'), 'VA4': ('EN19', 'Canada'),
    'VE5': ('DO51', 'Canada'), 'VA5': ('DO51', 'Canada'),
    'VE6': ('DO33', 'Canada'), 'VA6': ('DO33', 'Canada'),
    'VE7': ('CN89', 'Canada'), 'VA7': ('CN89', 'Canada'),
    'VE8': ('DP31', 'Canada'), 'VE9': ('FN65', 'Canada'),
    'VY1': ('CP28', 'Canada'), 'VY2': ('FN86', 'Canada'),
    'VO1': ('GN37', 'Canada'), 'VO2': ('GO17', 'Canada'),
    'VE': ('FN03', 'Canada'), 'VA': ('FN03', 'Canada'),
    # UK & Ireland
    'G': ('IO91', 'England'), 'M': ('IO91', 'England'), '2E': ('IO91', 'England'),
    'GW': ('IO81', 'Wales'), 'MW': ('IO81', 'Wales'),
    'GM': ('IO85', 'Scotland'), 'MM': ('IO85', 'Scotland'),
    'GI': ('IO64', 'Northern Ireland'), 'MI': ('IO64', 'Northern Ireland'),
    'EI': ('IO63', 'Ireland'), 'EJ': ('IO63', 'Ireland'),
    # Germany
    'DL': ('JO51', 'Germany'), 'DJ': ('JO51', 'Germany'), 'DK': ('JO51', 'Germany'),
    'DA': ('JO51', 'Germany'), 'DB': ('JO51', 'Germany'), 'DC': ('JO51', 'Germany'),
    'DD': ('JO51', 'Germany'), 'DF': ('JO51', 'Germany'), 'DG': ('JO51', 'Germany'),
    'DH': ('JO51', 'Germany'), 'DO': ('JO51', 'Germany'),
    # Rest of Europe
    'F': ('JN18', 'France'),
    'I': ('JN61', 'Italy'), 'IK': ('JN45', 'Italy'), 'IZ': ('JN61', 'Italy'),
    'EA': ('IN80', 'Spain'), 'EB': ('IN80', 'Spain'), 'EC': ('IN80', 'Spain'),
    'CT': ('IM58', 'Portugal'),
    'PA': ('JO21', 'Netherlands'), 'PD': ('JO21', 'Netherlands'), 'PE': ('JO21', 'Netherlands'),
    'PH': ('JO21', 'Netherlands'),
    'ON': ('JO20', 'Belgium'), 'OO': ('JO20', 'Belgium'), 'OT': ('JO20', 'Belgium'),
    'HB': ('JN47', 'Switzerland'), 'HB9': ('JN47', 'Switzerland'),
    'OE': ('JN78', 'Austria'),
    'OZ': ('JO55', 'Denmark'), 'OU': ('JO55', 'Denmark'),
    'SM': ('JO89', 'Sweden'), 'SA': ('JO89', 'Sweden'), 'SE': ('JO89', 'Sweden'),
    'LA': ('JO59', 'Norway'), 'LB': ('JO59', 'Norway'),
    'OH': ('KP20', 'Finland'), 'OG': ('KP20', 'Finland'),
    'SP': ('JO91', 'Poland'), 'SQ': ('JO91', 'Poland'), 'SO': ('JO91', 'Poland'),
    'OK': ('JN79', 'Czech Republic'), 'OL': ('JN79', 'Czech Republic'),
    'OM': ('JN88', 'Slovakia'),
    'HA': ('JN97', 'Hungary'), 'HG': ('JN97', 'Hungary'),
    'YO': ('KN34', 'Romania'), 'LZ': ('KN22', 'Bulgaria'), 'YU': ('KN04', 'Serbia'),
    '9A': ('JN75', 'Croatia'), 'S5': ('JN76', 'Slovenia'),
    'SV': ('KM17', 'Greece'), 'SX': ('KM17', 'Greece'), 'SV5': ('KM46', 'Dodecanese'),
    'SV9': ('KM25', 'Crete'), '9H': ('JM75', 'Malta'),
    'LY': ('KO24', 'Lithuania'), 'ES': ('KO29', 'Estonia'), 'YL': ('KO26', 'Latvia'),
    # Russia & Ukraine
    'UA': ('KO85', 'Russia'), 'RA': ('KO85', 'Russia'), 'RU': ('KO85', 'Russia'),
    'RV': ('KO85', 'Russia'), 'RW': ('KO85', 'Russia'), 'RX': ('KO85', 'Russia'),
    'RZ': ('KO85', 'Russia'),
    'UA0': ('OO33', 'Asiatic Russia'), 'RA0': ('OO33', 'Asiatic Russia'), 'R0': ('OO33', 'Asiatic Russia'),
    'UA9': ('MO06', 'Asiatic Russia'), 'RA9': ('MO06', 'Asiatic Russia'), 'R9': ('MO06', 'Asiatic Russia'),
    'UR': ('KO50', 'Ukraine'), 'UT': ('KO50', 'Ukraine'), 'UX': ('KO50', 'Ukraine'),
    'US': ('KO50', 'Ukraine'),
    # Japan
    'JA1': ('PM95', 'Japan'), 'JA2': ('PM84', 'Japan'), 'JA3': ('PM74', 'Japan'),
    'JA4': ('PM64', 'Japan'), 'JA5': ('PM63', 'Japan'), 'JA6': ('PM53', 'Japan'),
    'JA7': ('QM07', 'Japan'), 'JA8': ('QN02', 'Japan'), 'JA9': ('PM86', 'Japan'),
    'JA0': ('PM97', 'Japan'),
    'JA': ('PM95', 'Japan'), 'JH': ('PM95', 'Japan'), 'JR': ('PM95', 'Japan'),
    'JE': ('PM95', 'Japan'), 'JF': ('PM95', 'Japan'), 'JG': ('PM95', 'Japan'),
    # Rest of Asia
    'HL': ('PM37', 'South Korea'), 'DS': ('PM37', 'South Korea'), '6K': ('PM37', 'South Korea'),
    'BV': ('PL04', 'Taiwan'), 'BX': ('PL04', 'Taiwan'),
    'BY': ('OM92', 'China'), 'BA': ('OM92', 'China'), 'BD': ('OM92', 'China'), 'BG': ('OM92', 'China'),
    'VU': ('MK82', 'India'),
    'HS': ('OK03', 'Thailand'), 'E2': ('OK03', 'Thailand'),
    '9V': ('OJ11', 'Singapore'), '9M': ('OJ05', 'Malaysia'), '9W': ('OJ05', 'Malaysia'),
    'DU': ('PK04', 'Philippines'), 'DV': ('PK04', 'Philippines'), 'DX': ('PK04', 'Philippines'),
    '4F': ('PK04', 'Philippines'),
    'YB': ('OI33', 'Indonesia'), 'YC': ('OI33', 'Indonesia'), 'YD': ('OI33', 'Indonesia'),
    # Oceania
    'VK': ('QF56', 'Australia'), 'VK1': ('QF44', 'Australia'), 'VK2': ('QF56', 'Australia'),
    'VK3': ('QF22', 'Australia'), 'VK4': ('QG62', 'Australia'), 'VK5': ('PF95', 'Australia'),
    'VK6': ('OF86', 'Australia'), 'VK7': ('QE38', 'Australia'),
    'ZL': ('RF70', 'New Zealand'), 'ZL1': ('RF72', 'New Zealand'), 'ZL2': ('RF70', 'New Zealand'),
    'ZL3': ('RE66', 'New Zealand'), 'ZL4': ('RE54', 'New Zealand'),
    'KH6': ('BL01', 'Hawaii'), 'KH2': ('QK24', 'Guam'), 'FK': ('RG37', 'New Caledonia'),
    'KL': ('BP51', 'Alaska'), 'NL': ('BP51', 'Alaska'), 'WL': ('BP51', 'Alaska'),
    # South America
    'LU': ('GF05', 'Argentina'), 'LW': ('GF05', 'Argentina'), 'LO': ('GF05', 'Argentina'),
    'PY': ('GG87', 'Brazil'), 'PP': ('GG87', 'Brazil'), 'PR': ('GG87', 'Brazil'),
    'PT': ('GG87', 'Brazil'), 'PU': ('GG87', 'Brazil'),
    'CE': ('FF46', 'Chile'), 'CA': ('FF46', 'Chile'), 'XQ': ('FF46', 'Chile'),
    'CX': ('GF15', 'Uruguay'), 'HC': ('FI09', 'Ecuador'), 'OA': ('FH17', 'Peru'),
    'HK': ('FJ35', 'Colombia'), 'HJ': ('FJ35', 'Colombia'),
    'YV': ('FK60', 'Venezuela'), 'YY': ('FK60', 'Venezuela'),
    # Caribbean
    'KP4': ('FK68', 'Puerto Rico'), 'NP4': ('FK68', 'Puerto Rico'), 'WP4': ('FK68', 'Puerto Rico'),
    'VP5': ('FL31', 'Turks & Caicos'), 'HI': ('FK49', 'Dominican Republic'),
    'CO': ('FL10', 'Cuba'), 'CM': ('FL10', 'Cuba'),
    'FG': ('FK96', 'Guadeloupe'), 'FM': ('FK94', 'Martinique'), 'PJ': ('FK52', 'Curacao'),
    # Africa
    'ZS': ('KG33', 'South Africa'), 'ZR': ('KG33', 'South Africa'), 'ZT': ('KG33', 'South Africa'),
    'ZU': ('KG33', 'South Africa'),
    '5N': ('JJ55', 'Nigeria'), 'CN': ('IM63', 'Morocco'), '7X': ('JM16', 'Algeria'),
    'SU': ('KL30', 'Egypt'), '5Z': ('KI88', 'Kenya'), 'ET': ('KJ49', 'Ethiopia'),
    'EA8': ('IL18', 'Canary Islands'), 'EA9': ('IM75', 'Ceuta & Melilla'),
    # Middle East
    'A4': ('LL93', 'Oman'), 'A6': ('LL65', 'United Arab Emirates'), 'A7': ('LL45', 'Qatar'),
    'HZ': ('LL24', 'Saudi Arabia'), '4X': ('KM72', 'Israel'), '4Z': ('KM72', 'Israel'),
    'OD': ('KM73', 'Lebanon'),
    # Antarctica and South Atlantic
    'VP8': ('GD18', 'Falkland Islands'), 'CE9': ('FC56', 'Antarctica'),
    'DP0': ('IB59', 'Antarctica'), 'KC4': ('FC56', 'Antarctica'),
}

# First character -> typical grid when no prefix matches
FALLBACK_GRIDS: Dict[str, str] = {
    'F': 'JN18', 'G': 'IO91', 'I': 'JN61', 'J': 'PM95', 'V': 'QF56',
    'W': 'EM79', 'X': 'EK09', 'Y': 'JO91', 'Z': 'KG33',
}

# US call districts: K/N/W with optional second letter, or AA-AL, then a digit
_US_CALL_RE = re.compile(r'^(?:[KNW][A-Z]?|A[A-L])([0-9])')
_US_PREFIX_RE = re.compile(r'^(?:[KNW]|A[A-L][0-9])')
US_DISTRICT_GRIDS = {
    '0': 'EN31', '1': 'FN41', '2': 'FN20', '3': 'FM19', '4': 'EM73',
    '5': 'EM12', '6': 'CM97', '7': 'DN31', '8': 'EN81', '9': 'EN52',
}
US_DEFAULT_GRID = 'EM79'

# Operating suffixes that never carry location
_PORTABLE_SUFFIXES = {'P', 'M', 'MM', 'AM', 'QRP', 'A', 'B', 'LH'}

# Calls whose K/N/W prefix belongs to an entity listed in PREFIX_GRIDS
_US_EXCEPTIONS = ('KH', 'KP', 'NP', 'WP', 'KL', 'NL', 'WL', 'KC4')


def base_callsign(call: Optional[str]) -> str:
    """Reduce a call to the part that carries the prefix.

    ``EA8/DL1ABC`` and ``DL1ABC/EA8`` both give ``EA8``; ``DL1ABC/P`` gives
    ``DL1ABC``. Suffixes such as /P, /M, /QRP and bare digits are ignored.
    """
    if not call:
        return ''
    parts = [
        part for part in call.strip().upper().split('/')
        if part and part not in _PORTABLE_SUFFIXES and not part.isdigit()
    ]
    if not parts:
        return ''
    if len(parts) == 1:
        return parts[0]
    return min(parts, key=len)


def _longest_prefix(call: str, table: Dict[str, object]) -> Optional[str]:
    for length in range(min(4, len(call)), 0, -1):
        prefix = call[:length]
        if prefix in table:
            return prefix
    return None


def get_callsign_info(call: Optional[str]) -> Dict[str, Optional[object]]:
    """CQ zone, ITU zone and continent for a callsign.

    Unknown calls give ``{'cq_zone': None, 'itu_zone': None, 'continent': None}``.
    """
    upper = base_callsign(call)
    if not upper:
        return {'cq_zone': None, 'itu_zone': None, 'continent': None}

    prefix = _longest_prefix(upper, PREFIX_ZONES)
    if prefix is not None:
        cq_zone, itu_zone, continent = PREFIX_ZONES[prefix]
    elif upper[0] in FALLBACK_ZONES:
        cq_zone, itu_zone, continent = FALLBACK_ZONES[upper[0]]
    else:
        return {'cq_zone': None, 'itu_zone': None, 'continent': None}

    return {'cq_zone': cq_zone, 'itu_zone': itu_zone, 'continent': continent}


def _is_us_call(call: str) -> bool:
    if call.startswith(_US_EXCEPTIONS):
        return False
    return bool(_US_PREFIX_RE.match(call))


def estimate_location(call: Optional[str]) -> Optional[Dict]:
    """Approximate station location from the callsign prefix.

    US calls are placed by call district; others by the longest matching
    prefix, then by first character. Returns ``None`` when nothing matches.
    """
    upper = base_callsign(call)
    if not upper:
        return None

    if _is_us_call(upper):
        district = _US_CALL_RE.match(upper)
        grid = US_DISTRICT_GRIDS.get(district.group(1)) if district else None
        return _location(grid or US_DEFAULT_GRID, 'USA')

    prefix = _longest_prefix(upper, PREFIX_GRIDS)
    if prefix is not None:
        grid, country = PREFIX_GRIDS[prefix]
        return _location(grid, country)

    grid = FALLBACK_GRIDS.get(upper[0])
    if grid:
        return _location(grid, '')
    return None


def _location(grid: str, country: str) -> Optional[Dict]:
    position = grid_to_latlon(grid)
    if position is None:
        return None
    lat, lon = position
    return {'lat': lat, 'lon': lon, 'grid': grid, 'country': country, 'estimated': True}
