"""
Deterministic Distribution Logger
=================================
Logs every distribution cycle for replay and bound verification.
"""

import json
import numpy as np
from typing import Any, Dict


def _to_builtin(value):
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class DistributionLogger:
    """
    Deterministic logger for wrench distribution cycles.

    Log every cycle:
    - desired and achieved total wrench
    - ridge forces
    - per-contact global and local wrenches
    - solver status and timing
    """

    def __init__(self, path: str):
        """
        Args:
            path: Output file path (JSONL format)
        """
        self.path = path
        self.f = open(path, "w")

    def log(self, step: int, data: Dict[str, Any]):
        """
        Log a single step.

        Args:
            step: Step number
            data: Step data dictionary
        """
        data["step"] = step
        self.f.write(json.dumps(data, default=_to_builtin) + "\n")

    def log_distribution(self, step: int, wrench_dist) -> None:
        """
        Log the last result of a WrenchDistribution.

        Args:
            step: Step number
            wrench_dist: WrenchDistribution after run()
        """
        names = [contact.name for contact in wrench_dist.contact_list]
        data = {
            "state": wrench_dist.state,
            "desired_total_wrench": wrench_dist.desired_total_wrench,
            "result_total_wrench": wrench_dist.result_total_wrench,
            "result_wrench_ratio": wrench_dist.result_wrench_ratio,
            "solve_info": wrench_dist.last_solve_info,
        }
        if wrench_dist.result_wrench_ratio.shape[0] == wrench_dist.ridge_num:
            data["contact_wrenches"] = dict(zip(names, wrench_dist.calc_wrench_list()))
            data["contact_local_wrenches"] = dict(zip(names, wrench_dist.calc_local_wrench_list()))
        self.log(step, data)

    def close(self):
        """Close the log file."""
        self.f.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
