"""Core assembly, roster and transcript logic.

WHY: The core package holds the pure, side-effect-free pieces: the IR
dataclasses, segment assembly, roster resolution, question detection and
the local summary. Everything else (capture loop, server, storage)
depends on it; it depends on nothing but config.

RULES:
- No I/O in this package
- IR dataclasses are the contract between assembly, storage and export
"""
