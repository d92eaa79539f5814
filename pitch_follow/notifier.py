import time
import serial, serial.tools.list_ports
from typing import Optional

from .chart import describe
from .config import DEFAULT_BAUD
from .pf_types import (EventListener, PositionHit, PositionMissed, ScoreCompleted,
                       SessionStateChanged)


def find_serial(name_like: Optional[str]) -> Optional[str]:
    if not name_like:
        return None
    s = name_like.lower()
    for p in serial.tools.list_ports.comports():
        combo = (p.device + " " + (p.description or "")).lower()
        if s in combo:
            return p.device
    if name_like.startswith("/dev/") or name_like.upper().startswith("COM"):
        return name_like
    return None


class SerialNotifier(EventListener):
    """Lights an Arduino LED board: 'G' on a hit, 'R' on a miss."""

    def __init__(self, port: Optional[str], baud: int = DEFAULT_BAUD):
        self.ser = None
        if port:
            try:
                self.ser = serial.Serial(port, baudrate=baud, timeout=0)
                time.sleep(2.0)
                print(f"Arduino connected on {port} @ {baud} baud")
            except serial.SerialException as e:
                print(f"[WARN] Could not open Arduino serial '{port}': {e}")

    def _write(self, payload: bytes):
        if not self.ser:
            return
        try:
            self.ser.write(payload)
        except serial.SerialException as e:
            print(f"[WARN] Serial write failed: {e}")

    def on_event(self, event):
        if isinstance(event, PositionHit):
            self._write(b'G')
        elif isinstance(event, PositionMissed):
            self._write(b'R')

    def close(self):
        if self.ser:
            try:
                self.ser.close()
            except serial.SerialException as e:
                print(f"[WARN] Closing serial port failed: {e}")
            self.ser = None


class ConsoleNotifier(EventListener):
    def __init__(self, show_states: bool = False):
        self.show_states = show_states

    def on_event(self, event):
        if isinstance(event, PositionHit):
            n = event.note
            print(f"[hit ] #{event.index:<4d} {describe(event.expected):14s} played {n.name:4s} "
                  f"{n.frequency_hz:7.1f} Hz  {n.cents_offset:+5.1f} ct")
        elif isinstance(event, PositionMissed):
            print(f"[miss] #{event.index:<4d} {describe(event.expected):14s}")
        elif isinstance(event, SessionStateChanged) and self.show_states:
            print(f"[state] {event.old.value} -> {event.new.value}")
        elif isinstance(event, ScoreCompleted):
            print_summary(event.summary)


def print_summary(summary):
    stats = {
        "positions": summary.positions,
        "hits": summary.hits,
        "misses": summary.misses,
        "rests": summary.rests,
        "accuracy": summary.accuracy * 100.0,
        "max_streak": summary.max_streak,
    }
    print("\n----- Results -----")
    for k, v in stats.items():
        if k == "accuracy": print(f"{k:>12s}: {v:.1f} %")
        else:               print(f"{k:>12s}: {v}")
