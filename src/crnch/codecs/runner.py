"""Run an external tool and report only whether it succeeded."""

import logging
import shlex
import subprocess
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def run_tool(cmd: list[str], stdout_path: Optional[Path] = None) -> bool:
    """Run ``cmd`` to completion.

    When ``stdout_path`` is given the tool's stdout is written there. A
    nonzero exit or a failure to spawn returns False; the tool's stderr is
    logged at debug level. There is no timeout.
    """
    logger.debug(f"Running: {shlex.join(cmd)}")
    try:
        if stdout_path is not None:
            with open(stdout_path, "wb") as out:
                result = subprocess.run(cmd, stdout=out, stderr=subprocess.PIPE, check=False)
        else:
            result = subprocess.run(cmd, capture_output=True, check=False)
    except OSError as e:
        logger.debug(f"Could not start {cmd[0]}: {e}")
        return False

    if result.returncode != 0:
        stderr = result.stderr.decode(errors="replace").strip() if result.stderr else ""
        logger.debug(f"{cmd[0]} exited with {result.returncode}: {stderr}")
        return False
    return True
