from celery import Celery
from cantinaxl.core.config import settings

broker_url = settings.CELERY_BROKER_URL
result_backend = settings.CELERY_RESULT_BACKEND or broker_url

celery_app = Celery('cantinaxl', broker=broker_url, backend=result_backend)
celery_app.autodiscover_tasks(["cantinaxl.tasks"])

celery_app.conf.update(
    task_serializer='json',
    result_serializer='json',
    accept_content=['json'],
    task_ignore_result=True,
)
