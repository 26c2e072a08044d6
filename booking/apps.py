import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class BookingConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'booking'
    verbose_name = 'Salon booking'

    def ready(self):
        from booking import conf

        opening, closing = conf.opening_time(), conf.closing_time()
        if closing <= opening:
            logger.warning("Salon closing time %s is not after opening time %s; no slots will be offered",
                           closing, opening)
