import os


def _env_flag(name, default):
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///arena.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    BCRYPT_LOG_ROUNDS = int(os.environ.get('BCRYPT_LOG_ROUNDS', '12'))
    # Advertised to clients as the countdown; resolution is admin-triggered
    SHAPE_QUEST_DURATION_SEC = int(os.environ.get('SHAPE_QUEST_DURATION_SEC', '30'))
    # Silence during a shape quest counts as a losing choice
    ELIMINATE_SILENT_PLAYERS = _env_flag('ELIMINATE_SILENT_PLAYERS', 'true')
    STARTING_COINS = int(os.environ.get('STARTING_COINS', '1000'))
    # Display numbers handed out on roster import (inclusive)
    NUMBER_RANGE_MIN = int(os.environ.get('NUMBER_RANGE_MIN', '1'))
    NUMBER_RANGE_MAX = int(os.environ.get('NUMBER_RANGE_MAX', '456'))
    # Seed account created by `flask db-reset`
    ADMIN_IDENTITY = os.environ.get('ADMIN_IDENTITY', 'admin')
    ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD', 'password')
