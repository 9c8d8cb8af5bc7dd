"""
==========================
Helpers - Windows Hosts & Event Logs
==========================

This module provides helpers for Windows-specific operations: reaching remote hosts, locating
event log files on the administrative share, clearing remote event logs, and hiding folders.

Functions:
- `ping`: One ICMP echo to a host using the system `ping` command.
- `evtx_file_name`: File name of an event log channel (`Microsoft-Windows-X/Operational`
  is stored as `Microsoft-Windows-X%4Operational.evtx`).
- `admin_share_path`: UNC path of a log file on a host's administrative share.
- `clear_event_log`: Clear a remote event log with `wevtutil cl`.
- `set_hidden`: Set the hidden attribute on a folder (no-op outside Windows).

Usage:
>>> from logarchiver.helpers.win import ping, admin_share_path
>>> ping("SRV01")
True
>>> admin_share_path("SRV01", r"C$\\Windows\\System32\\winevt\\Logs", "System")
'\\\\SRV01\\C$\\Windows\\System32\\winevt\\Logs\\System.evtx'

*Author: Sudharshan TK*\n
*Created: 2025-08-23*
"""

import os
import subprocess

from logarchiver.errors import RemoteLogError

WEVTUTIL = "wevtutil"
FILE_ATTRIBUTE_HIDDEN = 0x02


def ping(host: str, timeout_ms: int = 1000) -> bool:
    """
    Send one ICMP echo to `host`.

    Args:
        host (str): Host name or address.
        timeout_ms (int, optional): Reply timeout. Defaults to 1000.

    Returns:
        bool: True if the host replied, False otherwise (including when `ping` is unavailable).
    """
    if os.name == "nt":
        cmd = ["ping", "-n", "1", "-w", str(timeout_ms), host]
    else:
        cmd = ["ping", "-c", "1", "-W", str(max(1, timeout_ms // 1000)), host]
    try:
        proc = subprocess.run(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        return proc.returncode == 0
    except FileNotFoundError:
        return False


def evtx_file_name(log_name: str) -> str:
    return log_name.replace("/", "%4") + ".evtx"


def admin_share_path(host: str, share: str, log_name: str) -> str:
    share = share.strip("\\/").replace("/", "\\")
    return f"\\\\{host}\\{share}\\{evtx_file_name(log_name)}"


def clear_event_log(host: str, log_name: str) -> None:
    """
    Clear an event log on a remote host.

    Raises:
        RemoteLogError: If `wevtutil` is missing or reports a failure.
    """
    cmd = [WEVTUTIL, "cl", log_name, f"/r:{host}"]
    try:
        subprocess.run(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.PIPE, check=True)
    except subprocess.CalledProcessError as e:
        err = (e.stderr.decode("utf-8", errors="replace").strip()
               if getattr(e, "stderr", None) else str(e))
        raise RemoteLogError(f"wevtutil failed for {log_name} on {host}: {err}") from e
    except FileNotFoundError as e:
        raise RemoteLogError(f"{WEVTUTIL} not found in PATH") from e


def set_hidden(path: str) -> bool:
    """
    Mark a folder hidden on Windows. Names starting with a dot are already hidden elsewhere.

    Returns:
        bool: False if Windows refused to set the attribute, True otherwise.
    """
    if os.name != "nt":
        return True
    from ctypes import windll
    return bool(windll.kernel32.SetFileAttributesW(str(path), FILE_ATTRIBUTE_HIDDEN))
