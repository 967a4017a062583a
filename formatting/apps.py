from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class FormattingConfig(AppConfig):
    name = 'formatting'
    verbose_name = _('Formatting')
