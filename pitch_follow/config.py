from dataclasses import dataclass

SR = 44100
WINDOW_SIZE = 2048          # samples per analysis frame
MASTER_GAIN = 0.8

# Detection gates
CONFIDENCE_THRESHOLD = 0.8  # periodicity (clarity) in [0, 1]
LOUDNESS_THRESHOLD = 0.01   # frame RMS
# Picks lags whose clarity is at least this fraction of the best lobe
PEAK_PICK_K = 0.9

# Detectable range (piano A0 .. C8 with some margin)
MIN_FREQ_HZ = 27.0
MAX_FREQ_HZ = 4200.0

# Tuning
REFERENCE_PITCH_HZ = 440.0
REFERENCE_MIDI = 69         # A4

# Tempo
DEFAULT_TEMPO_BPM = 60.0
DEFAULT_TEMPO_USPQN = 500_000  # MIDI files without set_tempo (120 BPM)
DEFAULT_QUARTER_LENGTH = 1.0
# Silent gaps shorter than this (in quarters) are not turned into rest positions
REST_MIN_QUARTERS = 0.25

# Metronome-style cue on each new position
CLICK_HZ = 1000
CLICK_MS = 35

# Display loop
DEFAULT_FPS = 60

# Arduino LED board
DEFAULT_BAUD = 115200

NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]
LETTER_SEMITONES = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}
ACCIDENTAL_OFFSETS = {"": 0, "#": 1, "b": -1, "##": 2, "bb": -2, "x": 2}

# Classical flat spellings -> sharp table
ENHARMONIC = {
    "Db": "C#",
    "Eb": "D#",
    "Gb": "F#",
    "Ab": "G#",
    "Bb": "A#",
}

# GM percussion lives on channel 10 (index 9); never pitched material
DRUM_CHANNEL = 9


def _is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


@dataclass(frozen=True)
class SessionConfig:
    confidence_threshold: float = CONFIDENCE_THRESHOLD
    loudness_threshold: float = LOUDNESS_THRESHOLD
    tempo_bpm: float = DEFAULT_TEMPO_BPM
    analysis_window_size: int = WINDOW_SIZE
    reference_pitch_hz: float = REFERENCE_PITCH_HZ
    sample_rate: int = SR
    min_frequency_hz: float = MIN_FREQ_HZ
    max_frequency_hz: float = MAX_FREQ_HZ

    def __post_init__(self):
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError(f"confidence_threshold must be in [0, 1], got {self.confidence_threshold}")
        if self.loudness_threshold < 0.0:
            raise ValueError(f"loudness_threshold must be >= 0, got {self.loudness_threshold}")
        if self.tempo_bpm <= 0:
            raise ValueError(f"tempo_bpm must be > 0, got {self.tempo_bpm}")
        if not _is_power_of_two(self.analysis_window_size):
            raise ValueError(f"analysis_window_size must be a power of two, got {self.analysis_window_size}")
        if self.reference_pitch_hz <= 0:
            raise ValueError(f"reference_pitch_hz must be > 0, got {self.reference_pitch_hz}")
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be > 0, got {self.sample_rate}")
        if not 0 < self.min_frequency_hz < self.max_frequency_hz:
            raise ValueError("frequency range must satisfy 0 < min < max")
