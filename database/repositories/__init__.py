from database.repositories.base import BaseRepository
from database.repositories.job import JobRepository
from database.repositories.tradie import TradieRepository
from database.repositories.quote import QuoteRepository
from database.repositories.customer import CustomerRepository
from database.repositories.lead_score import LeadScoreRepository

__all__ = [
    'BaseRepository',
    'JobRepository',
    'TradieRepository',
    'QuoteRepository',
    'CustomerRepository',
    'LeadScoreRepository',
]
