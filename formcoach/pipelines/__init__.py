"""
Pose-stream analysis pipeline for the Form Coach backend.

Turns per-frame joint maps from a pose model into form feedback:
    Stage 1: Detection-loss stabilization (StabilityTracker)
    Stage 2: Recent / session frame buffering (FrameBuffer)
    Stage 3: Motion-adaptive sampling + compact text encoding
    Stage 4: Reasoning service (form analysis agent) via AnalysisOrchestrator
"""
