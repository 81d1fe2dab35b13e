from flask import current_app


class ConfigError(Exception):
    code = 'CONFIG_ERROR'


_warned_optional = False


def require_config(name: str):
    value = current_app.config.get(name)
    if not value:
        raise ConfigError(f'Missing required configuration: {name}')
    return value


def validate_database_config() -> None:
    require_config('SQLALCHEMY_DATABASE_URI')


def validate_admin_config() -> None:
    require_config('ADMIN_TOKEN')


def warn_missing_optional_config() -> None:
    global _warned_optional
    if _warned_optional:
        return
    _warned_optional = True
    if not current_app.config.get('DEFAULT_GAME_ID'):
        current_app.logger.warning('[config] DEFAULT_GAME_ID not set; ESPN auto-discovery will be used')
