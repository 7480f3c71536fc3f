from launchmint.models.launch import (
    TOTAL_BPS,
    Platform,
    FeeClaimer,
    FeeAllocation,
    LaunchRequest,
    UploadedMetadata,
    SwapQuote,
    SwapResult,
    LaunchResult,
    LaunchState,
    Deadline,
    LaunchContext,
)

__all__ = [
    'TOTAL_BPS',
    'Platform',
    'FeeClaimer',
    'FeeAllocation',
    'LaunchRequest',
    'UploadedMetadata',
    'SwapQuote',
    'SwapResult',
    'LaunchResult',
    'LaunchState',
    'Deadline',
    'LaunchContext',
]
