from graph_harness.config.settings import HarnessConfig, get_config
from graph_harness.config.timeouts import Timeouts

__all__ = ["HarnessConfig", "get_config", "Timeouts"]
