"""
Processing Graph
================

LangGraph workflow for the processing phase of one eye's capture.

LangGraph is used for CONTROL FLOW only. There are no LLM calls.

Graph Structure:
    START → evaluate ─┬─(passing frames)──→ fuse ─┬─(fused)──→ enhance → END
                      │                           └─(None)───→ fusion_failed → END
                      └─(none passing)────→ gate_failed → END

Channels:
    Inputs:  eye, frames, config
    Outputs: scored, passing, fusion, enhancement, result | fallback + error

Design Rules:
    - Enhancement is applied ONLY to the fused frame
    - Fusion only sees the highest-ranked passing subset
    - A gate failure produces a fallback result from the best frame,
      unenhanced, never a silent pass
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, TypedDict

from langgraph.graph import END, StateGraph

from iris_capture.config import CaptureConfig
from iris_capture.enhancement.engine import SuperResolutionEngine
from iris_capture.fusion.fuser import FrameFuser
from iris_capture.models.capture import EyeLabel, FusionResult, IrisCaptureResult, ScoredFrame
from iris_capture.models.enhancement import EnhancementResult
from iris_capture.quality.evaluator import FrameEvaluator
from iris_capture.quality.feedback import build_quality_feedback
from iris_capture.stream.frame import Frame


logger = logging.getLogger(__name__)


NO_PASSING_FRAMES_MESSAGE = "Frames did not pass quality checks. Please try again."
FUSION_FAILED_MESSAGE = "Unable to generate a fused frame. Please retry."


class ProcessingState(TypedDict, total=False):
    """
    State passed through the processing graph.

    Attributes:
        eye: Eye being captured
        frames: Burst in capture order
        config: Effective capture configuration
        scored: All frames, ranked best first
        passing: Frames that cleared the quality gate, ranked
        fusion: Fusion output
        enhancement: Super-resolution output
        result: Successful capture result
        fallback: Below-gate result the user may accept
        error: Failure message for the session
    """

    eye: EyeLabel
    frames: List[Frame]
    config: CaptureConfig
    scored: List[ScoredFrame]
    passing: List[ScoredFrame]
    fusion: Optional[FusionResult]
    enhancement: Optional[EnhancementResult]
    result: Optional[IrisCaptureResult]
    fallback: Optional[IrisCaptureResult]
    error: Optional[str]


class ProcessingGraph:
    """
    Evaluate → gate → fuse → enhance, as a compiled LangGraph.

    Attributes:
        evaluator: Scores, ranks and gates frames
        fuser: Fuses the top passing frames
        engine: Super-resolution engine for the fused frame
    """

    def __init__(
        self,
        engine: SuperResolutionEngine,
        evaluator: Optional[FrameEvaluator] = None,
        fuser: Optional[FrameFuser] = None,
    ) -> None:
        self.engine = engine
        self.evaluator = evaluator or FrameEvaluator()
        self.fuser = fuser or FrameFuser()

        self._graph = self._build_graph()

    def _build_graph(self) -> Any:
        """Build and compile the LangGraph workflow."""
        workflow = StateGraph(ProcessingState)

        workflow.add_node("evaluate", self._evaluate_node)
        workflow.add_node("gate_failed", self._gate_failed_node)
        workflow.add_node("fuse", self._fuse_node)
        workflow.add_node("fusion_failed", self._fusion_failed_node)
        workflow.add_node("enhance", self._enhance_node)

        workflow.set_entry_point("evaluate")
        workflow.add_conditional_edges(
            "evaluate",
            self._route_after_evaluate,
            {"fuse": "fuse", "gate_failed": "gate_failed"},
        )
        workflow.add_conditional_edges(
            "fuse",
            self._route_after_fuse,
            {"enhance": "enhance", "fusion_failed": "fusion_failed"},
        )
        workflow.add_edge("gate_failed", END)
        workflow.add_edge("fusion_failed", END)
        workflow.add_edge("enhance", END)

        return workflow.compile()

    async def run(self, eye: EyeLabel, frames: List[Frame], config: CaptureConfig) -> ProcessingState:
        """
        Process one burst.

        Args:
            eye: Eye being captured
            frames: Burst in capture order (non-empty)
            config: Effective capture configuration

        Returns:
            Final graph state; exactly one of `result` or `error` is set
        """
        initial: ProcessingState = {
            "eye": eye,
            "frames": list(frames),
            "config": config,
            "scored": [],
            "passing": [],
            "fusion": None,
            "enhancement": None,
            "result": None,
            "fallback": None,
            "error": None,
        }
        return await self._graph.ainvoke(initial)

    # -------------------------------------------------------------------------
    # Nodes
    # -------------------------------------------------------------------------

    async def _evaluate_node(self, state: ProcessingState) -> Dict[str, Any]:
        config = state["config"]
        scored = await asyncio.to_thread(self.evaluator.evaluate, state["frames"], config)
        passing = self.evaluator.filter_passing(scored, config)
        return {"scored": scored, "passing": passing}

    def _route_after_evaluate(self, state: ProcessingState) -> str:
        return "fuse" if state.get("passing") else "gate_failed"

    def _gate_failed_node(self, state: ProcessingState) -> Dict[str, Any]:
        scored = state.get("scored") or []
        if not scored:
            return {"fallback": None, "error": NO_PASSING_FRAMES_MESSAGE}

        eye = state["eye"]
        config = state["config"]
        best = scored[0]
        feedback = build_quality_feedback(eye, best.quality, config)

        logger.warning(
            f"Quality gate failed for {eye.value} eye: "
            f"best composite={best.quality.composite:.3f}"
        )

        fallback = IrisCaptureResult(
            eye=eye,
            frame_count=len(state["frames"]),
            used_frame_count=1,
            fused_b64=best.frame.image_b64,
            fused_uri=best.frame.uri,
            top_frames=(best,),
            quality=best.quality,
            enhancement=None,
            is_fallback=True,
            failure_reason=feedback.message,
            tips=feedback.tips,
        )
        return {"fallback": fallback, "error": feedback.message}

    async def _fuse_node(self, state: ProcessingState) -> Dict[str, Any]:
        fusion = await asyncio.to_thread(self.fuser.fuse, state["passing"], state["config"])
        return {"fusion": fusion}

    def _route_after_fuse(self, state: ProcessingState) -> str:
        return "enhance" if state.get("fusion") is not None else "fusion_failed"

    def _fusion_failed_node(self, state: ProcessingState) -> Dict[str, Any]:
        logger.error("Fusion returned no result despite passing frames")
        return {"error": FUSION_FAILED_MESSAGE}

    async def _enhance_node(self, state: ProcessingState) -> Dict[str, Any]:
        fusion = state["fusion"]
        config = state["config"]
        enhancement = await self.engine.enhance(fusion.fused_b64)

        result = IrisCaptureResult(
            eye=state["eye"],
            frame_count=len(state["frames"]),
            used_frame_count=fusion.frames_used,
            fused_b64=fusion.fused_b64,
            fused_uri=fusion.fused_uri,
            top_frames=tuple(state["passing"][: config.fusion_frame_count]),
            quality=fusion.average_quality,
            enhancement=enhancement,
            is_fallback=False,
        )
        return {"enhancement": enhancement, "result": result}
