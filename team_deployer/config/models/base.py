from sqlalchemy.orm import declarative_base

# Shared declarative base for every ORM model of the service
Base = declarative_base()
