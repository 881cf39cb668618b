"""agentloop - drives a generative model through a propose/execute/observe loop."""

__version__ = "0.1.0"

from agentloop.config import Config
from agentloop.parsing import Invocation, parse

__all__ = ["Config", "Invocation", "parse", "__version__"]
