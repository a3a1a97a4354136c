from .qubit import Basis, QuantumBit, polarization_for
from .eavesdropper import HackerConfig, InterceptResendAttack
from .channel import NoiseModel, QuantumChannel
from .state import Phase, SimulationState
from .engine import BB84Engine
from .analysis import (
    ChannelAnalysis,
    SessionSummary,
    analyze_channel,
    calculate_error_rate,
    classify,
    detect_eavesdropping,
    error_rate_history,
    expected_error_rate,
    format_binary_key,
    is_secure,
    summarise,
)
