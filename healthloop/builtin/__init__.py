"""Reference components usable straight from policies.yaml."""

from .http_sensor import HttpSensor
from .resolvers import LoggingResolver
from .threshold import SymptomDiagnoser, ThresholdDetector
