"""
Test package for qonvert.

unit/         fast tests with subprocesses and sockets mocked out
integration/  real sockets and the fake ffmpeg in fixtures/
regression/   guards for bugs that have bitten before
"""
