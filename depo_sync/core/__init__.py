"""Core alignment engine: IR dataclasses, parsing, alignment, aggregation.

WHY: The core package is the algorithmic heart of the synchronizer. It
owns every transformation between raw transcript text plus recognized
words and the final time-anchored units the codecs serialize.

HOW: ir.py defines the data structures, parser.py and sanitizer.py
prepare the human side, aligner.py and interpolator.py produce per-word
timing, aggregator.py and mapping.py group words into output units.

RULES:
- IR dataclasses are the contract between the core and the codecs
- No module in core writes files or prints; progress goes to logging
  or to an explicit callback
"""
