from sqlalchemy.orm import declarative_base

# Models import Base from here; importing metricpoints.models registers
# their tables with Base.metadata (see session.init_db).
Base = declarative_base()
