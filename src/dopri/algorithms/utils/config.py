FASTMATH = False  # Global flag for Numba's fastmath option

# Default tolerances
RTOL = 1e-5
ATOL = 1e-8

# Span-relative defaults for the step-size bounds
MAX_STEP_FRACTION = 0.1
MIN_STEP_DIVISOR = 1e18

# Attempted steps (accepted + rejected) before the driver gives up
MAX_STEPS = 100000

# Step-size controller (Hairer & Wanner 1993, p.167)
SAFETY_FAC = 0.25 ** (1.0 / 5.0)  # ~ 0.7578
FAC_MAX = 5.0
FAC_MIN = 0.1
DOMAIN_REJECT_ERR = 10.0

# Last step is taken when the next one would land within 1% of the end
END_HIT_FACTOR = 1.01

# Initial step heuristic (Hairer & Wanner 1993, p.169)
HINIT_SMALL_NORM = 1e-5
HINIT_TINY_DERIV = 1e-15
HINIT_FALLBACK = 1e-6
HINIT_DOMAIN_RETRIES = 5
