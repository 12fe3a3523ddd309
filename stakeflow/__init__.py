"""
Stakeflow Rewards Backend

A modular backend service for a staking-rewards dashboard that provides:
- Scheduled reward accrual and weekly compounding
- Daily, weekly and monthly statistics rollups
- Daily portfolio snapshots with retention
- REST API for job control and derived data
"""

__version__ = "0.1.0"
