"""
CLI Commands

Commands registered on the ``feedcel`` application.
"""
