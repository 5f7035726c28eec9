"""
Commit message assembly.

See :mod:`commit_gen.commit.assembler` and
:mod:`commit_gen.commit.conventional`.
"""

from .assembler import assemble_commit  # noqa: F401
from .conventional import infer_type  # noqa: F401
