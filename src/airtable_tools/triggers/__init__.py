"""
Polling triggers for Airtable Tools.

Usage:
    from airtable_tools.triggers import start_polling, stop_polling

    handle = await start_polling(
        {"base_id": "appXXX", "table_name": "Leads", "polling_interval": 60},
        {"authenticationType": "pat", "accessToken": "pat..."},
        emit=on_new_records,
    )
    stop_polling(handle)
"""

from .airtable_trigger import (
    AirtableTrigger,
    PollingHandle,
    PollState,
    run_poll_cycle,
    select_new_records,
    start_polling,
    stop_polling,
)

__all__ = [
    "AirtableTrigger",
    "PollingHandle",
    "PollState",
    "run_poll_cycle",
    "select_new_records",
    "start_polling",
    "stop_polling",
]
