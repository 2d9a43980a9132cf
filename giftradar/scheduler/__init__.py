"""Scheduler module for periodic sync, verification and reminder tasks.

Schedule overview:
  - every 6h (first run at start) - Sync codes from websites, announce new ones
  - every 6h (first run at start) - Verify posted codes, delete expired ones
  - per guild, Bear Trap time     - Bear Trap reminder every N days
  - per guild, 23:30 UTC daily    - Arena reminder (when enabled)
"""
