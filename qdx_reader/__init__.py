"""
QDX Ticket Reader
=================

Decoder for the fixed-length (64-byte record) QDX transaction log written by
retail POS terminals. Reassembles completed purchase tickets from interleaved
multi-record streams.

Modules:
    - fields: Typed record structures and the BCD timestamp
    - decoder: Fixed-layout record decoders
    - dispatch: Opcode → handler table
    - models: Ticket and item models
    - aggregator: Per-session ticket state and finalization rules
    - scanner: Slot-by-slot stream scanner
    - config: Scanner configuration
    - saver: CSV output
    - report: pandas summaries
    - main: Command-line entry point
"""

from qdx_reader.aggregator import TicketAggregator
from qdx_reader.config import ScannerConfig
from qdx_reader.models import Ticket
from qdx_reader.scanner import StreamScanner

__version__ = '0.1.0'

__all__ = ['StreamScanner', 'TicketAggregator', 'ScannerConfig', 'Ticket']
