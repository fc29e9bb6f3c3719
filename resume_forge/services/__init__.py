"""Generation pipeline: prompts, provider policy, state machine, ledger and job runner."""
