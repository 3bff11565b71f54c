"""`obsacq` - observation acquisition engine for data-reduction pipelines.

Subpackages:
- instrument: Naming, matching, format conversion, staging, remote tasks
- pipeline: Cursor, discovery strategies, acquisition loop, orchestrator
- schemas: Pydantic configuration
- contracts: Error taxonomy and fail-fast invariants
"""

__version__ = "0.1.0"
