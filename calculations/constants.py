"""
Shared constants for DX spot filtering and propagation calculations.
"""

# Band frequencies in MHz used by the propagation model
BAND_FREQUENCIES = {
    '160m': 1.8,
    '80m': 3.5,
    '40m': 7.0,
    '30m': 10.1,
    '20m': 14.0,
    '17m': 18.1,
    '15m': 21.0,
    '12m': 24.9,
    '10m': 28.0,
    '6m': 50.0
}

# Band edges in MHz for classifying spots, checked in order
BAND_RANGES = [
    ('160m', 1.8, 2.0),
    ('80m', 3.5, 4.0),
    ('60m', 5.33, 5.405),
    ('40m', 7.0, 7.3),
    ('30m', 10.1, 10.15),
    ('20m', 14.0, 14.35),
    ('17m', 18.068, 18.168),
    ('15m', 21.0, 21.45),
    ('12m', 24.89, 24.99),
    ('11m', 26.0, 28.0),  # top edge exclusive, 28.0 is 10m
    ('10m', 28.0, 29.7),
    ('6m', 50.0, 54.0),
    ('2m', 144.0, 148.0),
    ('70cm', 420.0, 450.0),
]
OTHER_BAND = 'other'

# Modes recognised in spot comments, in display order
MODES = ['CW', 'SSB', 'RTTY', 'FT8', 'FT4', 'PSK', 'AM', 'FM']

# Reliability thresholds (percent) for status labels, highest first
STATUS_THRESHOLDS = [
    (70, 'EXCELLENT'),
    (50, 'GOOD'),
    (30, 'FAIR'),
    (15, 'POOR'),
]
STATUS_CLOSED = 'CLOSED'

# Reliability thresholds for the display SNR bucket
SNR_THRESHOLDS = [
    (80, '+20dB'),
    (60, '+10dB'),
    (40, '0dB'),
    (20, '-10dB'),
]
SNR_FLOOR = '-20dB'

# Solar defaults when NOAA feeds are unavailable
DEFAULT_SFI = 150
DEFAULT_SSN = 100
DEFAULT_K_INDEX = 2

# Reliability is reported as an integer percentage in this range
RELIABILITY_MIN = 0
RELIABILITY_MAX = 99

# API timeouts in seconds
API_TIMEOUT_DEFAULT = 10
API_TIMEOUT_SOLAR = 10
API_TIMEOUT_SPOTS = 8
