"""Narration pipeline core: chunks, cache, fetcher, session state and the Narrator."""
