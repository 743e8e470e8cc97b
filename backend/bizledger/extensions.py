# Overview: Flask extension instances for database, migrations, and live collection updates.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

from .services.subscription_service import CollectionHub

db = SQLAlchemy()
migrate = Migrate()
hub = CollectionHub()
