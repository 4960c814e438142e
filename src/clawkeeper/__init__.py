"""
Clawkeeper — durable state for sandboxed agents.

Mirrors an agent's config, skills, and workspace notes to an R2 bucket
mounted inside the sandbox, and brings them back when the container
is recreated. Restore first, then back up. Never the other way round.
"""

import os

__version__ = "0.1.0"

CLAWKEEPER_HOME = os.environ.get("CLAWKEEPER_HOME", "~/.clawkeeper")
