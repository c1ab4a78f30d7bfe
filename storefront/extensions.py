"""Flask extensions shared across the application (initialized in create_app)."""
from flask_cors import CORS
from flask_session import Session
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
server_session = Session()
cors = CORS()
