"""Runtime: variable sets, build groups, collaborators and the orchestrator."""
