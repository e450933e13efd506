"""Application layer: ports and the services that orchestrate rooms and broadcasts."""
