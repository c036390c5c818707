import os

from dotenv import load_dotenv

load_dotenv()


def _flag(value):
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    MYSQL_USER = os.getenv('MYSQL_USER', 'root')
    MYSQL_PASSWORD = os.getenv('MYSQL_PASSWORD', 'root123')
    MYSQL_HOST = os.getenv('MYSQL_HOST', 'localhost')
    MYSQL_DB = os.getenv('MYSQL_DB', 'sales_db')
    MYSQL_PORT = int(os.getenv('MYSQL_PORT', 3306))
    MYSQL_SSL = _flag(os.getenv('MYSQL_SSL', 'false'))
    API_PREFIX = os.getenv('API_PREFIX', '/api')
    SELF_PING_URL = os.getenv('SELF_PING_URL')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    SWAGGER = {
        'title': 'Sales API',
        'description': 'API for managing sales records',
        'version': '1.0.0',
        'uiversion': 3,
        'specs_route': '/api-docs/',
    }
