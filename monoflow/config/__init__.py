from .global_config_loader import GlobalConfig, load_global_config
from .context_loader import load_context, context_from_dict
