#!/usr/bin/env python3
import argparse, signal, sys, threading, time

from .audio import AutoPlayer, SyntheticSource
from .chart import chart_from_names, load_score
from .config import (CONFIDENCE_THRESHOLD, DEFAULT_BAUD, DEFAULT_FPS, DEFAULT_TEMPO_BPM,
                     LOUDNESS_THRESHOLD, REFERENCE_PITCH_HZ, WINDOW_SIZE, SessionConfig)
from .notifier import ConsoleNotifier, SerialNotifier, find_serial, print_summary
from .pf_types import PitchFollowError
from .session import EngineContext

STOP = threading.Event()
def _on_sigint(signum, frame):
    STOP.set()


def build_parser():
    ap = argparse.ArgumentParser(description="Score follower: play along on an acoustic instrument, "
                                             "the cursor advances on correct notes and misses on timeout.")
    ap.add_argument("score", nargs="?", help="Score file (.mid, .musicxml/.xml/.mxl, or .txt note list)")
    ap.add_argument("--notes", help="Inline note list instead of a file, e.g. \"C4 E4 [C4,E4,G4]/2 r G4\"")
    ap.add_argument("--tempo", type=float, default=None,
                    help=f"Tempo in BPM (default: the score's, else {DEFAULT_TEMPO_BPM:g})")
    ap.add_argument("--confidence", type=float, default=CONFIDENCE_THRESHOLD,
                    help=f"Pitch clarity gate (default {CONFIDENCE_THRESHOLD})")
    ap.add_argument("--loudness", type=float, default=LOUDNESS_THRESHOLD,
                    help=f"RMS loudness gate (default {LOUDNESS_THRESHOLD})")
    ap.add_argument("--window", type=int, default=WINDOW_SIZE,
                    help=f"Analysis window in samples, power of two (default {WINDOW_SIZE})")
    ap.add_argument("--reference", type=float, default=REFERENCE_PITCH_HZ,
                    help=f"A4 reference pitch in Hz (default {REFERENCE_PITCH_HZ:g})")
    ap.add_argument("--synthetic", action="store_true", help="Use a synthetic tone source that plays the score")
    ap.add_argument("--synthetic-delay", type=float, default=200.0,
                    help="Synthetic player's reaction time per position in ms (default 200)")
    ap.add_argument("--device", help="Input device name or index for the microphone")
    ap.add_argument("--list-devices", action="store_true", help="Print input devices and exit")
    ap.add_argument("--serial", help="Arduino serial (full path or substring, e.g. 'usbmodem', 'COM5')")
    ap.add_argument("--baud", type=int, default=DEFAULT_BAUD, help=f"Arduino baud (default {DEFAULT_BAUD})")
    ap.add_argument("--click", action="store_true", help="Click at the start of each position")
    ap.add_argument("--fps", type=float, default=DEFAULT_FPS, help=f"Analysis ticks per second (default {DEFAULT_FPS})")
    return ap


def main(argv=None):
    args = build_parser().parse_args(argv)

    if args.list_devices:
        from .mic import list_input_devices
        print("Available inputs:")
        for name in list_input_devices(): print("  -", name)
        return 0

    if not args.score and not args.notes:
        print("Give a score file or --notes.")
        return 2

    try:
        chart = chart_from_names(args.notes) if args.notes else load_score(args.score)
    except PitchFollowError as e:
        print(f"[ERROR] {e}")
        return 1
    if not len(chart):
        print("No notes found in this score.")
        return 1

    tempo = args.tempo or chart.tempo_bpm or DEFAULT_TEMPO_BPM
    try:
        config = SessionConfig(confidence_threshold=args.confidence, loudness_threshold=args.loudness,
                               tempo_bpm=tempo, analysis_window_size=args.window,
                               reference_pitch_hz=args.reference)
    except ValueError as e:
        print(f"[ERROR] {e}")
        return 2

    listeners = [ConsoleNotifier()]
    if args.serial:
        port = find_serial(args.serial)
        if not port:
            print("[WARN] Serial port not found. Proceeding without Arduino.")
        else:
            listeners.append(SerialNotifier(port, args.baud))
    if args.click:
        from .playback import ClickCue
        listeners.append(ClickCue())

    before_tick = None
    if args.synthetic:
        source = SyntheticSource(window_size=config.analysis_window_size, sample_rate=config.sample_rate,
                                 reference_hz=config.reference_pitch_hz)
        player = AutoPlayer(source, time.monotonic, args.synthetic_delay)
        listeners.append(player)
        before_tick = player
    else:
        from .mic import MicrophoneSource
        device = int(args.device) if args.device and args.device.isdigit() else args.device
        source = MicrophoneSource(device, config.analysis_window_size, config.sample_rate)
        try:
            source.start()
        except PitchFollowError as e:
            print(f"[ERROR] {e}")
            return 1

    print(f"Score: {chart.title or 'untitled'}  positions={len(chart)}  tempo={tempo:g} BPM  (Ctrl-C to stop)")
    signal.signal(signal.SIGINT, _on_sigint)
    with EngineContext(chart, source, config, listeners) as engine:
        engine.run(fps=args.fps, stop=STOP, before_tick=before_tick)
        if STOP.is_set():
            print_summary(engine.session.summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
