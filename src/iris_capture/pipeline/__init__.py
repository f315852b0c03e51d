"""
Pipeline Module
===============

Capture orchestration for one eye.

This module implements the session logic:
    - graph.py: LangGraph processing workflow (evaluate → gate → fuse → enhance)
    - controller.py: Capture session state machine with busy guard and
      generation tokens
"""

from iris_capture.pipeline.controller import CaptureSessionController
from iris_capture.pipeline.graph import ProcessingGraph, ProcessingState

__all__ = [
    "CaptureSessionController",
    "ProcessingGraph",
    "ProcessingState",
]
