"""
CLI commands — ship and pull.
"""
