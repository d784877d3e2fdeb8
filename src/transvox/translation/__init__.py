"""
transvox Translation Layer.

Pure building blocks used by the gateway service:
    - budget.py: Quality tiers and output-token ceilings
    - cache.py: In-process TTL/LRU cache and key construction
    - chunker.py: Sentence-bounded chunking for progressive playback
    - corrections.py: Exact/similar user-correction lookup
    - language.py: Source-language detection and speech locales
    - terminology.py: Domain term enforcement and system preambles
    - providers/: Gemini (fast) and OpenAI chat (deep) adapters
"""
