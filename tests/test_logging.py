"""Tests for logging utilities."""

import logging
from io import StringIO

import numpy as np

from activeqp import QP, GaussianFactorGraph, JacobianFactor, QPSolver, VectorValues
from activeqp.logging import (
    configure_logging,
    get_logger,
    set_log_level,
)
from activeqp.qp import solver as solver_module


def test_get_logger_returns_logger():
    """Test that get_logger returns a logger instance."""
    logger = get_logger("test_module")
    assert isinstance(logger, logging.Logger)
    assert logger.name == "activeqp.test_module"


def test_get_logger_keeps_package_prefix():
    """Module names already under the package are not prefixed twice."""
    logger = get_logger("activeqp.qp.solver")
    assert logger.name == "activeqp.qp.solver"
    assert get_logger().name == "activeqp"


def test_get_logger_caching():
    """Test that get_logger caches loggers."""
    logger1 = get_logger("test_module")
    logger2 = get_logger("test_module")
    assert logger1 is logger2


def test_get_logger_different_modules():
    """Test that different modules get different loggers."""
    logger1 = get_logger("module1")
    logger2 = get_logger("module2")
    assert logger1 is not logger2
    assert logger1.name != logger2.name


def test_set_log_level_string():
    """Test that set_log_level accepts string levels."""
    logger = get_logger("test_module")

    set_log_level("DEBUG")
    assert logger.level == logging.DEBUG

    set_log_level("ERROR")
    assert logger.level == logging.ERROR

    set_log_level(logging.WARNING)
    assert logger.level == logging.WARNING


def test_configure_logging_redirects_output():
    """configure_logging swaps the handler of cached loggers."""
    logger = get_logger("test_module")
    stream = StringIO()
    try:
        configure_logging(level=logging.INFO, stream=stream)
        logger.info("Solver message")
        logger.debug("Hidden message")
        output = stream.getvalue()
        assert "[INFO] activeqp.test_module: Solver message" in output
        assert "Hidden message" not in output
    finally:
        configure_logging(level=logging.WARNING)


def test_solver_logs_convergence():
    """The solver reports convergence at INFO level."""
    stream = StringIO()
    try:
        # Make sure the solver logger is cached before reconfiguring.
        assert solver_module.logger.name == "activeqp.qp.solver"
        configure_logging(level=logging.INFO, stream=stream)
        qp = QP(cost=GaussianFactorGraph([JacobianFactor({"x": np.eye(1)}, [1.0])]))
        QPSolver(qp).optimize(VectorValues({"x": [0.0]}))
        assert "Converged after" in stream.getvalue()
    finally:
        configure_logging(level=logging.WARNING)


def test_logger_does_not_propagate():
    """Test that loggers don't propagate to root logger."""
    logger = get_logger("test_module")
    assert logger.propagate is False
