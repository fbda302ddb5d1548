"""
Response recovery — turn wrapped, truncated or multi-part agent text into a
ScheduleProposal.
"""

from schedule_agent.parsing.envelope import unwrap_envelope, salvage_envelope
from schedule_agent.parsing.scanner import scan, Fragment, ScanResult
from schedule_agent.parsing.partial import recover_partial
from schedule_agent.parsing.fragments import combine_fragments, CombinedPayload
from schedule_agent.parsing.pipeline import recover_schedule, parse_schedule_payload

__all__ = [
    "unwrap_envelope",
    "salvage_envelope",
    "scan",
    "Fragment",
    "ScanResult",
    "recover_partial",
    "combine_fragments",
    "CombinedPayload",
    "recover_schedule",
    "parse_schedule_payload",
]
