from pathlib import Path
import tempfile
from unittest.mock import patch

import pytest


@pytest.fixture(autouse=True)
def isolate_home_config():
    """Point the user-level config lookup at an empty directory.

    Tests expect the built-in defaults unless they write a configuration
    file themselves, so a real ``~/.commit-gen.json`` must not leak in.
    """
    with tempfile.TemporaryDirectory(prefix="commit_gen_home_") as tmp:
        with patch("commit_gen.config.loader._get_home_directory", return_value=Path(tmp)):
            yield Path(tmp)
