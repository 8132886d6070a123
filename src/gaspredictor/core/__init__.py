"""
Core building blocks shared by the service and the CLI.
"""
