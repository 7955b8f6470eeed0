import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'farm-auctions-dev-key')  # Override in production
    SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI', 'sqlite://')
    SQLALCHEMY_TRACK_MODIFICATIONS = False  # Disable to save resources
    SQLALCHEMY_CREATE_ALL = os.environ.get('SQLALCHEMY_CREATE_ALL', '').lower() in ('1', 'true', 'yes')

    STORAGE_BACKEND = os.environ.get('STORAGE_BACKEND', 'memory')  # memory or sql
    TOKEN_TTL_HOURS = int(os.environ.get('TOKEN_TTL_HOURS', 24 * 7))
    AUCTION_SWEEP_MINUTES = int(os.environ.get('AUCTION_SWEEP_MINUTES', 0))  # 0 disables the sweep
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    STORAGE_BACKEND = 'memory'
    AUCTION_SWEEP_MINUTES = 0


class SqlTestingConfig(TestingConfig):
    STORAGE_BACKEND = 'sql'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_CREATE_ALL = True
