# -*- coding: utf-8 -*-
import os
import logging
import pathlib
from datetime import datetime
from logging.handlers import RotatingFileHandler

from mixdrop.api.utils.request_context import get_request_id

date_format = "%Y%m%d"
currentdir = os.path.dirname(os.path.realpath(__file__))
parentdir = os.path.dirname(os.path.dirname(os.path.dirname(currentdir)))
logdir = os.environ.get('LOG_DIR', os.path.join(parentdir, 'logs'))
logfiles = os.path.join(logdir, 'mixdrop - ' + datetime.today().strftime(date_format) + '.log')

log_level = os.environ.get('LOG_LEVEL', 'INFO').upper()


class RequestIdFilter(logging.Filter):
    """Ajoute l'identifiant de corrélation de la requête à chaque enregistrement."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or '-'
        return True


# création de l'objet logger qui va nous servir à écrire dans les logs
logger = logging.getLogger('mixdrop')
logger.setLevel(getattr(logging, log_level, logging.INFO))
logger.propagate = False

# formateur : temps, niveau, identifiant de requête puis message
formatter = logging.Formatter('%(asctime)s :: %(levelname)s :: [%(request_id)s] %(message)s')

if not logger.handlers:
    try:
        pathlib.Path(logdir).mkdir(parents=True, exist_ok=True)
        # fichier en mode 'append', 5 backups et une taille max de 1Mo
        file_handler = RotatingFileHandler(filename=logfiles,
                                           mode='a',
                                           maxBytes=1000000,
                                           backupCount=5)
        file_handler.setLevel(getattr(logging, log_level, logging.INFO))
        file_handler.setFormatter(formatter)
        file_handler.addFilter(RequestIdFilter())
        logger.addHandler(file_handler)
    except OSError as e:
        # répertoire non inscriptible (conteneur en lecture seule) : console uniquement
        print(f"Impossible de créer le fichier de log {logfiles}: {e}")

    # second handler qui redirige chaque écriture de log sur la console
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(getattr(logging, log_level, logging.INFO))
    stream_handler.setFormatter(formatter)
    stream_handler.addFilter(RequestIdFilter())
    logger.addHandler(stream_handler)
