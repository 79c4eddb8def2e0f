"""`gbabuild` - incremental Game Boy Advance graphics asset builder.

Subpackages:
- schemas: Configuration layers and build descriptor models
- gfx: Color quantization, source loading, naming, header synthesis
- pipeline: Staleness cache, group processor, orchestrator
- tools: External converter and make invocation
- contracts: Fail-fast stage invariants
- cli: Command-line entry point
"""

__version__ = "0.1.0"
