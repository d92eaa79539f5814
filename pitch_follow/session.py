import threading
import time
from collections import deque
from typing import Callable, Iterable, Optional

from .config import DEFAULT_FPS, SessionConfig
from .judge import MatchEngine
from .pf_types import (AudioFrame, AudioSource, Decision, Event, EventListener, NoteDetected,
                       NoteObservation, PitchObservation, PositionEntered, PositionHit,
                       PositionMissed, ScoreCompleted, ScorePositionProvider, SessionState,
                       SessionStateChanged, SessionSummary)
from .notes import note_from_frequency
from .pitch import PitchEstimator
from .scheduler import TimingScheduler


class SessionController:
    # tick(): audio frame first, then the deadline, so a same-tick hit wins

    def __init__(self, score: ScorePositionProvider, config: Optional[SessionConfig] = None,
                 clock: Callable[[], float] = time.monotonic, estimator: Optional[PitchEstimator] = None):
        self.score = score
        self.config = config or SessionConfig()
        self.estimator = estimator or PitchEstimator(self.config.min_frequency_hz, self.config.max_frequency_hz)
        self.matcher = MatchEngine()
        self.scheduler = TimingScheduler(clock)
        self.state = SessionState.IDLE
        self.position = 0
        self.summary = SessionSummary()
        self.last_note: Optional[NoteObservation] = None
        self._listeners: list[EventListener] = []
        self._pending: deque[Event] = deque()
        self._dispatching = False

    # ---- listeners ----

    def subscribe(self, listener: EventListener):
        self._listeners.append(listener)

    def unsubscribe(self, listener: EventListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: Event):
        self._pending.append(event)

    def _flush(self):
        # listeners may call back in (e.g. stop on a miss); their events queue behind ours
        if self._dispatching:
            return
        self._dispatching = True
        try:
            while self._pending:
                event = self._pending.popleft()
                for listener in list(self._listeners):
                    listener.on_event(event)
        finally:
            self._dispatching = False

    def _set_state(self, new: SessionState):
        old, self.state = self.state, new
        if old is not new:
            self._emit(SessionStateChanged(old=old, new=new))

    # ---- lifecycle ----

    @property
    def playing(self) -> bool:
        return self.state is SessionState.PLAYING

    def start(self) -> bool:
        if self.state is not SessionState.IDLE:
            return False
        self.score.reset()
        self.position = 0
        self.summary = SessionSummary()
        self.last_note = None
        self._set_state(SessionState.PLAYING)
        self._enter_position()
        self._flush()
        return True

    def stop(self) -> bool:
        if self.state is not SessionState.PLAYING:
            return False
        self.scheduler.cancel()
        self.summary.positions = self.position
        self._set_state(SessionState.PAUSED)
        self._flush()
        return True

    def resume(self) -> bool:
        if self.state is not SessionState.PAUSED:
            return False
        self._set_state(SessionState.PLAYING)
        self._enter_position()
        self._flush()
        return True

    def reset(self) -> bool:
        if self.state is not SessionState.PAUSED:
            return False
        self.scheduler.cancel()
        self.score.reset()
        self.position = 0
        self.matcher.enter_position()
        self._set_state(SessionState.IDLE)
        self._flush()
        return True

    # ---- per-tick work ----

    def observe(self, pitch: PitchObservation) -> Optional[NoteObservation]:
        """Apply the confidence/loudness gate, then map to a note."""
        if pitch.confidence <= self.config.confidence_threshold:
            return None
        if pitch.loudness <= self.config.loudness_threshold:
            return None
        return note_from_frequency(pitch.frequency_hz, self.config.reference_pitch_hz)

    def process_frame(self, frame: Optional[AudioFrame]) -> Optional[NoteObservation]:
        if not self.playing:
            return None
        note = None
        if frame is not None:
            note = self.observe(self.estimator.estimate(frame))
        # stopped while the frame was being analysed: drop the result
        if not self.playing:
            return None
        self.last_note = note
        self._emit(NoteDetected(note))
        if note is not None:
            self._judge(note)
        self._flush()
        return note

    def submit(self, note: NoteObservation) -> Decision:
        if not self.playing:
            return Decision.NO_DECISION
        decision = self._judge(note)
        self._flush()
        return decision

    def poll(self) -> bool:
        """Handle an expired deadline; True if the cursor moved."""
        if not self.playing:
            return False
        expired = self.scheduler.pop_expired()
        if expired is None or expired.for_position != self.position:
            return False
        expected = self.score.expected_notes_at_cursor()
        if expected:
            self.summary.misses += 1
            self.summary.streak = 0
            self._emit(PositionMissed(index=self.position, expected=expected))
        else:
            self.summary.rests += 1
        self._advance()
        self._flush()
        return True

    def tick(self, frame: Optional[AudioFrame] = None) -> Optional[NoteObservation]:
        note = self.process_frame(frame)
        self.poll()
        return note

    def expected_notes(self):
        return self.score.expected_notes_at_cursor()

    # ---- cursor ----

    def _judge(self, note: NoteObservation) -> Decision:
        expected = self.score.expected_notes_at_cursor()
        decision = self.matcher.evaluate(note, expected)
        if decision is Decision.HIT:
            self.scheduler.cancel()
            self.summary.hits += 1
            self.summary.streak += 1
            self.summary.max_streak = max(self.summary.max_streak, self.summary.streak)
            self.summary.hit_names.append(note.name)
            self._emit(PositionHit(index=self.position, expected=expected, note=note))
            self._advance()
        return decision

    def _advance(self):
        # the only place the cursor moves while playing
        self.score.advance()
        self.position += 1
        self._enter_position()

    def _enter_position(self):
        if self.score.is_end_reached():
            self._complete()
            return
        self.matcher.enter_position()
        duration = self.score.duration_of_current_position(self.config.tempo_bpm)
        self.scheduler.schedule(duration, self.position)
        self._emit(PositionEntered(index=self.position, expected=self.score.expected_notes_at_cursor(),
                                   duration_ms=duration))

    def _complete(self):
        self.scheduler.cancel()
        self.summary.positions = self.position
        self._set_state(SessionState.COMPLETE)
        self._emit(ScoreCompleted(summary=self.summary))
        self._set_state(SessionState.IDLE)


class EngineContext:
    """Owns a session, its source and listeners; closing stops and closes them all."""

    def __init__(self, score: ScorePositionProvider, source: AudioSource, config: Optional[SessionConfig] = None,
                 listeners: Iterable[EventListener] = (), clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self.session = SessionController(score, config, clock)
        self.source = source
        self.listeners = list(listeners)
        self.sleep = sleep
        for listener in self.listeners:
            self.session.subscribe(listener)

    def run(self, fps: float = DEFAULT_FPS, stop: Optional[threading.Event] = None,
            before_tick: Optional[Callable[[SessionController], None]] = None) -> SessionSummary:
        period = 1.0 / fps
        self.session.start()
        while self.session.playing:
            if stop is not None and stop.is_set():
                self.session.stop()
                break
            if before_tick is not None:
                before_tick(self.session)
            self.session.tick(self.source.read_frame())
            self.sleep(period)
        return self.session.summary

    def close(self):
        self.session.stop()
        for obj in [self.source, *self.listeners]:
            close = getattr(obj, "close", None)
            if callable(close):
                close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False
