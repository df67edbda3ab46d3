"""External collaborators: the decision oracle (LLM) and the game ledger."""
