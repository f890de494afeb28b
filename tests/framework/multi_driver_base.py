"""
Multi-driver test base for automatic driver discovery and execution.

This module provides a base class that automatically runs tests against all available drivers.
Each test file should inherit from MultiDriverTestBase and define a single create_app() method.
"""

import pytest
from typing import List
from abc import ABC, abstractmethod

from resttree import ResourceApplication
from .dsl import RestApiDsl
from .drivers import DriverInterface, DirectDriver, AsgiDriver


class MultiDriverTestBase(ABC):
    """
    Base class for multi-driver tests.

    Automatically runs each test method against all available drivers.
    Subclasses must implement create_app() to define the application under test.
    """

    # Override this in subclasses to control which drivers to test
    ENABLED_DRIVERS = [
        'direct',  # Direct driver: calls ResourceApplication.execute
        'asgi',    # ASGI driver: goes through the ASGI adapter
    ]

    # Optional: Override to exclude specific drivers for certain test files
    EXCLUDED_DRIVERS = []

    @abstractmethod
    def create_app(self) -> ResourceApplication:
        """
        Create and configure the application for testing.

        Called once per test so in-memory state never leaks between tests.
        """
        pass

    @classmethod
    def get_available_drivers(cls) -> List[str]:
        """Get list of available driver names for this test class."""
        return [driver for driver in cls.ENABLED_DRIVERS
                if driver not in cls.EXCLUDED_DRIVERS]

    @classmethod
    def create_driver(cls, driver_name: str, app: ResourceApplication) -> DriverInterface:
        """Create a driver instance for the given driver name."""
        driver_map = {
            'direct': DirectDriver,
            'asgi': AsgiDriver,
        }

        if driver_name not in driver_map:
            pytest.skip(f"Driver '{driver_name}' not available. Available: {list(driver_map.keys())}")

        return driver_map[driver_name](app)

    @pytest.fixture
    def api(self, request):
        """
        Parametrized fixture that provides API client for each enabled driver.

        This fixture is automatically parametrized with all enabled drivers.
        """
        driver_name = request.param
        app = self.create_app()
        driver = self.create_driver(driver_name, app)
        yield RestApiDsl(driver), driver_name
