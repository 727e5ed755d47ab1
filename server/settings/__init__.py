"""Django settings assembled from components with django-split-settings.

To change settings file:
`DJANGO_SETTINGS_MODULE=server.settings python manage.py runserver`
"""

from split_settings.tools import include

include(
    'components/common.py',
    'components/logging.py',
    'components/storages.py',
    'components/sharing.py',
)
