"""Audit subpackage - Per-cycle distribution logs"""
from .distribution_logger import DistributionLogger
