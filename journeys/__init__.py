# ==============================================================================
# Journey Analytics
# ==============================================================================
"""
Path analytics over clickstream events.

Reconstructs per-session step sequences from an append-only event store and
answers three questions about them:
- Which journeys (step prefixes) are most common?
- Which sessions move from one step to another?
- What do the events behind one step look like?

Layout:
- core/ - Step labels, patterns, predicates and session paths (pure logic)
- base/ - Store interfaces
- infrastructure/ - PostgreSQL and in-memory store adapters
- analytics/ - Aggregators built on session paths
- api/ - Transport-neutral request handlers
- cli/ - Operator command line
"""

__version__ = "0.1.0"
