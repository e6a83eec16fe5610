"""Application layer: orchestration, recovery and job control."""
