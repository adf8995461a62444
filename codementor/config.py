#!/usr/bin/env python3
"""
Configuration for codementor.

Everything lives in one JSON file, ~/.codementor/config.json (owner-only),
next to the profile database. Keys used:

    <provider>_api_key    stored LLM keys (env vars take priority)
    preferred_provider    provider picked during setup
    model                 default model override
    log_level             logging level when --verbose is not given
    db_path               profile database location
"""

import os
import json
import logging
from pathlib import Path
from typing import Optional, Dict, Any, List

from rich.console import Console
from rich.prompt import Confirm, IntPrompt, Prompt

logger = logging.getLogger(__name__)

HOME_ENV_VAR = 'CODEMENTOR_HOME'
CONFIG_FILENAME = 'config.json'
DB_FILENAME = 'profiles.db'


def get_config_dir() -> Path:
    """~/.codementor, or $CODEMENTOR_HOME when set; created on first use"""
    override = os.getenv(HOME_ENV_VAR)
    config_dir = Path(override) if override else Path.home() / '.codementor'
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_path() -> Path:
    return get_config_dir() / CONFIG_FILENAME


def get_db_path() -> Path:
    """Profile database location; 'db_path' in config overrides the default"""
    configured = get_config_value('db_path')
    return Path(configured).expanduser() if configured else get_config_dir() / DB_FILENAME


def load_config() -> Dict[str, Any]:
    """Read config.json; a missing or unreadable file counts as empty"""
    config_path = get_config_path()
    if not config_path.exists():
        return {}
    try:
        with open(config_path, 'r') as f:
            data = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        logger.warning("Ignoring unreadable config %s: %s", config_path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: expected a JSON object", config_path)
        return {}
    return data


def save_config(config: Dict[str, Any]) -> None:
    config_path = get_config_path()
    with open(config_path, 'w') as f:
        json.dump(config, f, indent=2)
    # Holds API keys
    config_path.chmod(0o600)


def get_config_value(key: str, default: Any = None) -> Any:
    return load_config().get(key, default)


def set_config_value(key: str, value: Any) -> None:
    """Store one value; None removes the key"""
    update_config({key: value})


def update_config(values: Dict[str, Any]) -> Dict[str, Any]:
    """Merge values into the stored config in a single write; None removes a key"""
    config = load_config()
    for key, value in values.items():
        if value is None:
            config.pop(key, None)
        else:
            config[key] = value
    save_config(config)
    return config


def configured_providers() -> List[str]:
    """Providers with a key stored in config.json (env vars not included)"""
    from .llm import PROVIDERS

    config = load_config()
    return [name for name, info in PROVIDERS.items() if config.get(info['config_key'])]


def clear_api_key(provider: Optional[str] = None) -> List[str]:
    """
    Remove stored API keys.

    Args:
        provider: Only clear this provider's key. Clears every key when None.

    Returns:
        Providers whose key was removed.
    """
    from .llm import PROVIDERS

    targets = [provider] if provider else list(PROVIDERS)
    removed = [p for p in targets if p in configured_providers()]
    if not removed:
        return []

    changes = {PROVIDERS[p]['config_key']: None for p in removed}
    if get_config_value('preferred_provider') in removed:
        changes['preferred_provider'] = None
    update_config(changes)
    logger.info("Removed stored API keys: %s", ', '.join(removed))
    return removed


def _choose_provider(console: Console) -> str:
    from .llm import PROVIDERS

    names = list(PROVIDERS)
    console.print("\ncodementor can teach with any of these models:")
    for i, name in enumerate(names, 1):
        console.print(f"  {i}. {PROVIDERS[name]['display_name']}")
    choice = IntPrompt.ask(
        "Choose provider",
        choices=[str(i) for i in range(1, len(names) + 1)],
        default=1,
        console=console,
    )
    return names[choice - 1]


def prompt_for_api_key(provider: Optional[str] = None,
                       console: Optional[Console] = None) -> Optional[str]:
    """
    Ask for an API key and offer to store it.

    Args:
        provider: Provider to configure. The learner picks one when None.
        console: Where to print and read from.

    Returns:
        The key, or None when the learner cancels or enters nothing.
    """
    from .llm import PROVIDERS

    console = console or Console()
    console.rule("LLM API Key Setup")

    try:
        if not provider:
            provider = _choose_provider(console)
        info = PROVIDERS[provider]

        console.print(f"\n[bold]{info['display_name']}[/bold] selected.")
        console.print(f"Get your API key at: {info['url']}")
        console.print(f"[dim]Keys are stored locally in {get_config_path()}[/dim]\n")

        api_key = Prompt.ask("Paste your API key (input hidden)", password=True, console=console).strip()
        if not api_key:
            console.print("[yellow]No key provided. Lessons need a model to run.[/yellow]")
            return None

        prefix = info['key_prefix']
        if not api_key.startswith(prefix):
            console.print(f"[yellow]That doesn't look like a {provider} key (expected prefix '{prefix}').[/yellow]")
            if not Confirm.ask("Save anyway?", default=False, console=console):
                return None

        if Confirm.ask(f"Save key to {get_config_path()} for future sessions?", default=True, console=console):
            update_config({info['config_key']: api_key, 'preferred_provider': provider})
            console.print(f"[green]Key saved.[/green] {info['display_name']} is now the preferred provider.")
        else:
            # Usable for this process only
            os.environ[info['env_var']] = api_key
            console.print("[dim]Key will only be used for this session.[/dim]")
        return api_key

    except (KeyboardInterrupt, EOFError):
        console.print("\nCancelled.")
        return None


def prompt_for_model(console: Optional[Console] = None) -> Optional[str]:
    """Ask for a default model; blank keeps the current setting"""
    console = console or Console()
    current = get_config_value('model')
    try:
        model = Prompt.ask(
            "Default model (blank for the provider default)",
            default=current or '',
            show_default=bool(current),
            console=console,
        ).strip()
    except (KeyboardInterrupt, EOFError):
        return current
    set_config_value('model', model or None)
    return model or None
