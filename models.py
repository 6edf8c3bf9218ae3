from sqlalchemy import Column, Integer, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()

class ViewStat(Base):
    __tablename__ = 'view_stats'
    page = Column(Text, primary_key=True)
    count = Column(Integer, nullable=False, default=0, server_default="0")
