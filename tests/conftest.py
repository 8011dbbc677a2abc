"""
Shared pytest setup.

The movement catalog is built when pt_planner is first imported and merges
~/.pt-planner/movements.yaml.  HOME is pointed at an empty directory here,
before any test module imports pt_planner, so rank expectations only depend
on the bundled catalog.
"""

import os
import tempfile

os.environ["HOME"] = tempfile.mkdtemp(prefix="pt-planner-home-")
os.environ.pop("PT_PLANNER_STORE", None)
os.environ.pop("PT_PLANNER_REDIS_URL", None)
