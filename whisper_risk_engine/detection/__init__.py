"""Signal analyzers and score aggregation for the whisper risk engine."""
