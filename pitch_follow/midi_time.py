from typing import Optional

from mido import MidiFile, MetaMessage
from .config import DEFAULT_TEMPO_USPQN

def build_tempo_map(mid: MidiFile):
    acc = 0
    tempos = [(0, DEFAULT_TEMPO_USPQN)]
    if not mid.tracks:
        return tempos
    for msg in mid.tracks[0]:
        acc += msg.time
        if isinstance(msg, MetaMessage) and msg.type == "set_tempo":
            if acc == 0:
                tempos[0] = (0, msg.tempo)
            else:
                tempos.append((acc, msg.tempo))
    tempos.sort(key=lambda x: x[0])
    return tempos

def has_set_tempo(mid: MidiFile) -> bool:
    return bool(mid.tracks) and any(msg.type == "set_tempo" for msg in mid.tracks[0])

def ticks_to_quarters(ticks: int, tpq: int) -> float:
    return ticks / float(tpq)

def estimate_bpm(tempo_map: list[tuple[int,int]]) -> float:
    us = tempo_map[0][1] if tempo_map else DEFAULT_TEMPO_USPQN
    return 60_000_000.0 / us

def file_bpm(mid: MidiFile) -> Optional[float]:
    # None lets the configured session tempo apply
    if not has_set_tempo(mid):
        return None
    return estimate_bpm(build_tempo_map(mid))
