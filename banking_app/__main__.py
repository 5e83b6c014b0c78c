#!/usr/bin/env python3
"""Run the banking walkthrough against a fresh in-memory bank"""

from typing import Optional

from .config import BankingConfig, get_config
from .demo import run_demo
from .logging_config import setup_logging
from .storage import InMemoryStorage
from .system import BankingSystem


def build_demo_system(config: Optional[BankingConfig] = None) -> BankingSystem:
    """Banking system from config, always on throwaway in-memory storage"""
    return BankingSystem(config or get_config(), storage=InMemoryStorage())


def main():
    config = get_config()
    setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)

    system = build_demo_system(config)
    try:
        run_demo(system.account_manager)
    finally:
        system.close()


if __name__ == "__main__":
    main()
