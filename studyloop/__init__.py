"""
studyloop - terminal client for a hosted study-set platform.

Packages:
- items: item content models and per-type handlers
- player: the study session state machine and its terminal runner
- api: RPC client and typed study procedures
- delivery: rich visuals and toast notifications
- cli: the `studyloop` command
"""

__version__ = "0.1.0"
