"""
mssqladmin - guarded administrative changes for SQL Server instances.

Disables or enables the HADR service flag and removes SQL Agent jobs, each
through a confirm -> apply -> restart -> re-verify workflow.

Usage:
    # CLI
    mssqladmin hadr disable -S sql01\\DEV1 --force

    # Programmatic
    from mssqladmin.application.container import Container, HADR
    from mssqladmin.application.policies import HadrTogglePolicy
    from mssqladmin.domain import HadrRequest
    from mssqladmin.domain.targets import parse_targets

    runner = Container().batch_runner(HADR)
    results = runner.run(parse_targets(["sql01"]), HadrRequest(), HadrTogglePolicy())
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
