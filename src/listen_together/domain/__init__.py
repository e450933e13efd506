"""Domain layer: rooms, their playback timeline and the realtime event vocabulary."""
