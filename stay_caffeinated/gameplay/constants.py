"""
Game constants - all magic numbers in one place.
NO UI DEPENDENCIES.
"""

# =============================================================================
# TIMING (all in milliseconds unless noted)
# =============================================================================
FRAME_RATE = 60                    # target updates per second
MAX_DELTA_TIME = 250.0             # cap for a single frame's elapsed time
WORKDAY_REAL_MINUTES = 3.0         # real minutes a junior workday lasts
BASELINE_WORKDAY_MINUTES = 480     # junior workday, in game minutes
WORKDAY_START_HOUR = 9             # in-game clock starts at 09:00

# =============================================================================
# CAFFEINE (0-100 scale)
# =============================================================================
CAFFEINE_MIN = 0.0
CAFFEINE_MAX = 100.0
CAFFEINE_START = 50.0
OPTIMAL_ZONE_CENTER = 50.0
CAFFEINE_WARNING_LOW = 20.0
CAFFEINE_WARNING_HIGH = 80.0
CAFFEINE_CRITICAL_LOW = 10.0
CAFFEINE_CRITICAL_HIGH = 90.0
CAFFEINE_DECAY_PER_MINUTE = 0.5    # natural decay used by predictions

# =============================================================================
# HEALTH (0-100 scale)
# =============================================================================
HEALTH_MIN = 0.0
HEALTH_MAX = 100.0
HEALTH_BASE_DEPLETION = 0.5        # per second outside the optimal zone
IN_ZONE_HEALTH_FACTOR = 0.1        # fraction of the drain applied inside the zone
HEALTH_WARNING_LOW = 30.0
HEALTH_CRITICAL_LOW = 10.0

# =============================================================================
# SCORE
# =============================================================================
SCORE_PER_SECOND = 10.0
SCORE_OPTIMAL_MULTIPLIER = 2.0
SCORE_MILESTONES = (1000, 5000, 10000, 25000, 50000, 100000)
TIME_MILESTONES = (0.25, 0.5, 0.75)  # fractions of the workday

# =============================================================================
# DRINK EFFECTS
# =============================================================================
CRASH_DURATION_PER_SEVERITY = 200.0  # ms of crash per severity point
CRASH_INTENSITY_SCALE = 0.03         # crash rate per (severity * peak caffeine), per second
HYDRATION_DURATION = 3000.0          # how long water counts as an active effect
INSTANT_HOLD_FRACTION = 0.2          # instant profile holds its peak for this share of the window
SLOW_PEAK_FRACTION = 0.8             # slow profile peaks at 80% of its window
TOLERANCE_WINDOW = 3_600_000.0       # one hour
TOLERANCE_PER_DRINK = 0.05           # effectiveness lost per recent drink (junior baseline)
TOLERANCE_FLOOR = 0.5                # effectiveness never drops below this
WATER_STABILITY_BONUS = 0.2

# Pairwise synergy rules (stack additively)
SYNERGY_WATER = 0.15                 # water with anything: stability
SYNERGY_TEA_COFFEE = 0.10            # tea + coffee: efficiency
SYNERGY_ENERGY_ESPRESSO = -0.20      # energy drink + espresso: overstimulation

# =============================================================================
# ACHIEVEMENTS
# =============================================================================
CAFFEINE_ADDICT_DRINKS = 50
HIGH_ACHIEVER_SCORE = 10000
SURVIVOR_DURATION = 600_000.0        # 10 minutes
PERFECT_BALANCE_DURATION = 300_000.0  # 5 minutes

# =============================================================================
# WORKDAY EVENTS (durations in ms; multipliers scale per-tick drains)
# =============================================================================
WORKDAY_EVENT_DATA = {
    "morningMeeting": {
        "name": "Morning Stand-up",
        "description": "Daily sync meeting - caffeine depletes faster!",
        "duration": 15000.0,
        "warning_time": 5000.0,
        "caffeine_multiplier": 2.0,
        "drink_restriction": True,
    },
    "codeReview": {
        "name": "Code Review",
        "description": "Intense focus required - optimal zone narrows!",
        "duration": 20000.0,
        "warning_time": 7000.0,
        "caffeine_multiplier": 1.5,
        "optimal_zone_shift": -10.0,
    },
    "bugFix": {
        "name": "Critical Bug",
        "description": "Emergency fix needed - health drains faster!",
        "duration": 12000.0,
        "warning_time": 4000.0,
        "caffeine_multiplier": 1.3,
        "health_multiplier": 2.5,
    },
    "lunchBreak": {
        "name": "Lunch Break",
        "description": "Mandatory break - caffeine depletes slower",
        "duration": 18000.0,
        "warning_time": 6000.0,
        "caffeine_multiplier": 0.5,
        "health_multiplier": 0.8,
    },
}
EVENT_MAX_GAP = 90000.0
EVENT_HISTORY_SIZE = 4
EVENT_AVOID_RECENT = 2
# tier -> (gap scaling, minimum gap in ms)
EVENT_FREQUENCY = {
    "intern": (1.2, 45000.0),
    "junior": (1.0, 35000.0),
    "senior": (0.8, 25000.0),
    "founder": (0.6, 20000.0),
}
EVENT_COMPLETE_BONUS = 1000

# =============================================================================
# POWER-UPS
# =============================================================================
POWERUP_DATA = {
    "proteinBar": {
        "name": "Protein Bar",
        "description": "Sustained energy with reduced crash",
        "duration": 30000.0,
        "cooldown": 45000.0,
        "crash_reduction": 0.5,
        "depletion_reduction": 0.2,
    },
    "vitamins": {
        "name": "Vitamins",
        "description": "Instant health boost and improved productivity",
        "duration": 20000.0,
        "cooldown": 60000.0,
        "health_boost": 25.0,
        "productivity_multiplier": 1.5,
    },
    "powerNap": {
        "name": "Power Nap",
        "description": "Take a quick nap to restore energy",
        "duration": 15000.0,
        "cooldown": 90000.0,
        "cost": 5000.0,
        "caffeine_boost": 30.0,
        "health_boost": 15.0,
        "crash_reduction": 0.3,
    },
}
MAX_ACTIVE_POWERUPS = 2
POWERUP_SCORE_BONUS = 500
