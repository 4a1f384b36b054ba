"""
Spot feed adapters.

Each adapter turns one provider's wire format into canonical ``Spot``
records. The five providers are:
- DX Spider Proxy (JSON array, MHz, several historical field names)
- HamQTH (caret-delimited text lines, kHz)
- WA0O DX Cache (JSON array, kHz)
- POTA activator spots (JSON array, kHz)
- SOTA spots (JSON array, MHz)

An adapter never raises: network failures, bad status codes, timeouts and
unparseable payloads all come back as an empty list.
"""

import logging
import re
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import pytz
import requests

from models import Spot
from data_sources.http_client import TimedRequest
from utils.logging_config import log_error_once

logger = logging.getLogger(__name__)

LOG_CATEGORY = 'DX Cluster'

# HHMM, HH:MM, HH:MM:SS, HHMMZ, optionally followed by a date ("2149 2025-05-27")
_CLOCK_RE = re.compile(r'^(\d{2}):?(\d{2})(?::\d{2})?(?:\s*[zZ])?(?:\s+\S.*)?$')
_DATE_ONLY_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')


def normalize_frequency(value: Any, unit: str = 'mhz') -> Optional[str]:
    """Convert a feed frequency to a 3-decimal MHz string.

    ``unit`` is what the feed declares. Feeds drift between units, so a value
    above 1000 declared in MHz is read as kHz, a value below 100 declared in
    kHz is read as MHz, and a kHz value above one million is read as Hz.
    Non-numeric or non-positive values give ``None``.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return None
    if number != number or number <= 0:
        return None

    if unit == 'khz':
        if number > 1_000_000:
            mhz = number / 1_000_000
        elif number < 100:
            mhz = number
        else:
            mhz = number / 1000
    else:
        mhz = number / 1000 if number > 1000 else number

    return f"{mhz:.3f}"


def _epoch_to_utc(value: float) -> datetime:
    if value > 1e12:
        value = value / 1000.0
    return datetime.fromtimestamp(value, tz=pytz.utc)


def normalize_time(value: Any) -> str:
    """Normalize a feed timestamp to ``"HH:MMz"`` (UTC), or ``""``."""
    if value is None or value == '' or isinstance(value, bool):
        return ''

    try:
        if isinstance(value, (int, float)):
            return f"{_epoch_to_utc(float(value)):%H:%M}z"

        text = str(value).strip()
        if not text:
            return ''

        clock = _CLOCK_RE.match(text)
        if clock:
            hour, minute = int(clock.group(1)), int(clock.group(2))
            if hour < 24 and minute < 60:
                return f"{hour:02d}:{minute:02d}z"
            return ''

        if text.isdigit() and len(text) >= 9:
            return f"{_epoch_to_utc(float(text)):%H:%M}z"

        # A bare date carries no time of day
        if _DATE_ONLY_RE.match(text):
            return ''

        iso = text.replace(' ', 'T', 1) if 'T' not in text else text
        if iso.endswith(('Z', 'z')):
            iso = iso[:-1] + '+00:00'
        # fromisoformat only accepts 3 or 6 fractional digits on older Pythons
        iso = re.sub(r'(\.\d{6})\d+', r'\1', iso)
        parsed = datetime.fromisoformat(iso)
        if parsed.tzinfo is None:
            parsed = pytz.utc.localize(parsed)
        else:
            parsed = parsed.astimezone(pytz.utc)
        return f"{parsed:%H:%M}z"
    except (ValueError, OverflowError, OSError) as e:
        logger.debug(f"Unparseable spot time {value!r}: {e}")
        return ''


def clean_callsign(value: Any) -> str:
    if value is None:
        return ''
    return str(value).strip().upper()


@dataclass(frozen=True)
class FieldMap:
    """Field-name aliases for one structured feed, tried in declared order."""

    call: Tuple[str, ...]
    freq: Tuple[str, ...] = ()
    freq_khz: Tuple[str, ...] = ()
    spotter: Tuple[str, ...] = ()
    comment: Tuple[str, ...] = ()
    time: Tuple[str, ...] = ()
    spotter_grid: Tuple[str, ...] = ()
    dx_grid: Tuple[str, ...] = ()
    freq_unit: str = 'mhz'

    @staticmethod
    def first(raw: Dict[str, Any], aliases: Tuple[str, ...]) -> Any:
        """Return the first alias present in ``raw`` with a non-empty value."""
        for alias in aliases:
            value = raw.get(alias)
            if value is not None and value != '':
                return value
        return None


class SpotSource:
    """Base adapter: download, parse, normalize, never raise."""

    id = ''
    name = ''
    description = ''
    default_timeout = 10.0
    max_spots = 50

    def __init__(self, url: str, timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout if timeout is not None else self.default_timeout
        self.session = session

    def request(self, cancel_event: Optional[threading.Event] = None) -> TimedRequest:
        return TimedRequest(self.url, timeout=self.timeout,
                            cancel_event=cancel_event, session=self.session)

    def fetch(self, cancel_event: Optional[threading.Event] = None) -> List[Spot]:
        """Fetch one batch. Any failure yields ``[]``."""
        try:
            req = self.request(cancel_event)
            payload = self.download(req)
            if payload is None:
                if req.last_error and req.last_error != 'cancelled':
                    log_error_once(LOG_CATEGORY, f"{self.name}: {req.last_error}", logger)
                return []

            spots = self.parse(payload)
            logger.debug(f"{self.name}: {len(spots)} spots")
            return spots
        except Exception as e:
            log_error_once(LOG_CATEGORY, f"{self.name}: {e}", logger)
            return []

    def download(self, req: TimedRequest) -> Any:
        return req.get_json()

    def records(self, payload: Any) -> List[Any]:
        if isinstance(payload, list):
            return payload
        if isinstance(payload, dict) and isinstance(payload.get('spots'), list):
            return payload['spots']
        return []

    def parse(self, payload: Any) -> List[Spot]:
        """Normalize every record, dropping the malformed ones individually."""
        spots = []
        for raw in self.records(payload)[:self.max_spots]:
            try:
                spot = self.normalize(raw)
            except (TypeError, ValueError, KeyError, AttributeError) as e:
                logger.debug(f"{self.name}: dropping malformed record {raw!r}: {e}")
                continue
            if spot is not None:
                spots.append(spot)
        return spots

    def normalize(self, raw: Any) -> Optional[Spot]:
        raise NotImplementedError


class StructuredSpotSource(SpotSource):
    """Adapter for JSON feeds described by a ``FieldMap``."""

    field_map: FieldMap = FieldMap(call=('call',), freq=('freq',))

    def normalize(self, raw: Any) -> Optional[Spot]:
        if not isinstance(raw, dict):
            return None
        fields = self.field_map

        call = clean_callsign(fields.first(raw, fields.call))
        if not call:
            return None

        freq = normalize_frequency(fields.first(raw, fields.freq), fields.freq_unit)
        if freq is None and fields.freq_khz:
            freq = normalize_frequency(fields.first(raw, fields.freq_khz), 'khz')
        if freq is None:
            return None

        comment = fields.first(raw, fields.comment)
        comment = str(comment).strip() if comment is not None else ''

        return Spot(
            spotter=clean_callsign(fields.first(raw, fields.spotter)),
            call=call,
            freq=freq,
            comment=self.decorate_comment(raw, comment),
            time=normalize_time(fields.first(raw, fields.time)),
            source=self.name,
            spotter_grid=self._grid(fields.first(raw, fields.spotter_grid)),
            dx_grid=self._grid(fields.first(raw, fields.dx_grid)),
        )

    def decorate_comment(self, raw: Dict[str, Any], comment: str) -> str:
        return comment

    @staticmethod
    def _grid(value: Any) -> Optional[str]:
        if not value:
            return None
        return str(value).strip().upper() or None


class DXSpiderProxySource(StructuredSpotSource):
    id = 'proxy'
    name = 'DX Spider Proxy'
    description = 'Dedicated proxy service - real-time DX Spider telnet feed via HTTP'
    field_map = FieldMap(
        call=('call', 'dxCall', 'dx'),
        freq=('freq', 'frequency'),
        freq_khz=('freqKhz',),
        spotter=('spotter', 'de'),
        comment=('comment', 'info'),
        time=('time', 'timestamp'),
        spotter_grid=('spotterGrid',),
        dx_grid=('dxGrid',),
    )


class DXCacheSource(StructuredSpotSource):
    id = 'dxcache'
    name = 'WA0O DX Cache'
    description = 'WA0O aggregated DX cluster cache (HTTP JSON)'
    field_map = FieldMap(
        call=('spotted', 'call'),
        freq=('frequency', 'freq'),
        spotter=('spotter', 'de'),
        comment=('message', 'comment'),
        time=('when', 'time'),
        freq_unit='khz',
    )


class POTASource(StructuredSpotSource):
    id = 'pota'
    name = 'POTA'
    description = 'Parks on the Air activator spots (api.pota.app)'
    default_timeout = 8.0
    field_map = FieldMap(
        call=('activator',),
        freq=('frequency',),
        spotter=('spotter',),
        comment=('comments',),
        time=('spotTime',),
        dx_grid=('grid6', 'grid4'),
        freq_unit='khz',
    )

    def decorate_comment(self, raw: Dict[str, Any], comment: str) -> str:
        parts = [raw.get('reference') or '', raw.get('mode') or '', comment]
        return ' '.join(p.strip() for p in parts if p and p.strip())


class SOTASource(StructuredSpotSource):
    id = 'sota'
    name = 'SOTA'
    description = 'Summits on the Air spots (api2.sota.org.uk)'
    default_timeout = 8.0
    field_map = FieldMap(
        call=('activatorCallsign',),
        freq=('frequency',),
        spotter=('callsign',),
        comment=('comments',),
        time=('timeStamp',),
    )

    def request(self, cancel_event: Optional[threading.Event] = None) -> TimedRequest:
        return TimedRequest(self.url, timeout=self.timeout,
                            headers={'Accept': 'application/json'},
                            cancel_event=cancel_event, session=self.session)

    def decorate_comment(self, raw: Dict[str, Any], comment: str) -> str:
        association = raw.get('associationCode') or ''
        summit = raw.get('summitCode') or ''
        reference = f"{association}/{summit}" if association and summit else association or summit
        parts = [reference, raw.get('mode') or '', comment]
        return ' '.join(p.strip() for p in parts if p and p.strip())


class HamQTHSource(SpotSource):
    """HamQTH CSV feed.

    One spot per line, caret-delimited:
    ``Spotter^FreqKHz^DXCall^Comment^HHMM YYYY-MM-DD^^^Cont^Band^Country^DXCC``
    """

    id = 'hamqth'
    name = 'HamQTH'
    description = 'HamQTH.com CSV feed (HTTP, works everywhere)'

    def download(self, req: TimedRequest) -> Any:
        return req.get_text()

    def records(self, payload: Any) -> List[Any]:
        if not isinstance(payload, str):
            return []
        return [line for line in payload.strip().splitlines() if '^' in line]

    def normalize(self, raw: Any) -> Optional[Spot]:
        parts = raw.split('^')
        if len(parts) < 3:
            return None

        call = clean_callsign(parts[2])
        freq = normalize_frequency(parts[1], 'khz')
        if not call or freq is None:
            return None

        return Spot(
            spotter=clean_callsign(parts[0]),
            call=call,
            freq=freq,
            comment=parts[3].strip() if len(parts) > 3 else '',
            time=normalize_time(parts[4]) if len(parts) > 4 else '',
            source=self.name,
        )


# Registry order is the listing order; AUTO_SOURCE_ORDER is the fallback chain
SPOT_SOURCES = {
    DXSpiderProxySource.id: DXSpiderProxySource,
    HamQTHSource.id: HamQTHSource,
    DXCacheSource.id: DXCacheSource,
    POTASource.id: POTASource,
    SOTASource.id: SOTASource,
}

AUTO_SOURCE_ORDER = ('proxy', 'hamqth', 'dxcache', 'pota', 'sota')

AUTO_SOURCE_INFO = {
    'id': 'auto',
    'name': 'Auto (Best Available)',
    'description': 'Tries Proxy first, then HamQTH, WA0O DX Cache, POTA and SOTA',
}


def source_urls(config) -> Dict[str, str]:
    """Map each source id to its endpoint from the app configuration."""
    proxy_base = config.DXSPIDER_PROXY_URL.rstrip('/')
    return {
        'proxy': f"{proxy_base}/api/dxcluster/spots?limit=50",
        'hamqth': config.HAMQTH_URL,
        'dxcache': config.DXCACHE_URL,
        'pota': config.POTA_URL,
        'sota': config.SOTA_URL,
    }


def build_sources(config, session: Optional[requests.Session] = None) -> Dict[str, SpotSource]:
    urls = source_urls(config)
    return {
        source_id: source_class(urls[source_id], session=session)
        for source_id, source_class in SPOT_SOURCES.items()
    }
