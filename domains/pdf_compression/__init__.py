"""
PDF Compression Domain

Watches a source directory for new PDFs and compresses each one with
Ghostscript:
- profiles.py - Standard and RGBFallback argument lists
- invoker.py - Ghostscript detection and process execution
- orchestrator.py - Two-pass decision with original-file fallback
- relocator.py - Retrying copy/move and ingestion ignore rules
- watchers/directory.py - Stability-aware directory monitor
- controller.py - Start/stop lifecycle and per-file dispatch
"""

__all__ = ["controller", "invoker", "models", "orchestrator", "profiles", "relocator", "watchers"]
