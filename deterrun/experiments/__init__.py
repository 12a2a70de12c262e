"""Experiment execution for deploy2deter test matrices.

Runs each configuration under a deadline, retries failed attempts, averages
the valid ones and persists one report row per configuration.
"""
