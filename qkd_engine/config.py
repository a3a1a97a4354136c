"""
config.py — Protocol constants and simulation defaults.
"""
import os

# Simulation defaults
DEFAULT_BIT_COUNT = int(os.environ.get("QKD_DEFAULT_BIT_COUNT", "50"))

# Logical timing (milliseconds)
EMISSION_INTERVAL_MS = 100    # spacing between consecutive sender photons
TRANSMISSION_DELAY_MS = 50    # sender emission -> receiver detection

# Eavesdropper defaults
DEFAULT_INTERCEPTION_RATE = 0.5
DEFAULT_MEASUREMENT_ERROR_RATE = 0.1
DEFAULT_RESEND_ERROR_RATE = 0.1

# Security
SECURITY_THRESHOLD = 11.0                  # percent; above this the run is compromised
THEORETICAL_ERROR_RATE_WITH_EAVESDROPPER = 12.5
THEORETICAL_ERROR_RATE_CLEAN = 0.0

SESSION_ID_PREFIX = "QKD"
