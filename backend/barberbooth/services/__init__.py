"""Generation services: retrying image client, sheet codec, video poller, session orchestrator."""
