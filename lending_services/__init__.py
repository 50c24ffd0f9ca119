"""
lending_services -- composition root for the lending kernel.

Wires ``lending_config`` into an engine, repositories, and a ready
``LoanTransactionCoordinator``.  The kernel never imports this package.
"""

from lending_services.bootstrap import LendingRuntime, build_runtime

__all__ = ["LendingRuntime", "build_runtime"]
