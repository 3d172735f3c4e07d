"""
Génération des pics de forme d'onde affichés par le lecteur.

Approximation visuelle volontairement naïve : écart maximal des octets bruts
au point milieu (128), sans décodage audio.
"""
from typing import List

from mixdrop.api.utils.constants import WAVEFORM_DEFAULT_SAMPLES

GAIN = 1.2
SECOND_CHANNEL_RATIO = 0.95


def generate_waveform_peaks(buffer: bytes, num_samples: int = WAVEFORM_DEFAULT_SAMPLES) -> List[List[float]]:
    """
    Découpe le buffer en `num_samples` tranches et retourne deux canaux de pics.

    Args:
        buffer: contenu brut du fichier audio
        num_samples: nombre de points par canal

    Returns:
        [canal gauche, canal droit], chaque valeur dans [0, 1]
    """
    length = len(buffer)
    chunk_size = length // num_samples if num_samples > 0 else 0

    left: List[float] = []
    for i in range(num_samples):
        start = i * chunk_size
        end = min(start + chunk_size, length)
        chunk = buffer[start:end]
        peak = 0.0
        if chunk:
            # l'écart maximal à 128 est atteint sur l'octet min ou l'octet max
            peak = max(abs(max(chunk) - 128), abs(min(chunk) - 128)) / 128
        left.append(min(peak * GAIN, 1.0))

    right = [value * SECOND_CHANNEL_RATIO for value in left]
    return [left, right]


def empty_waveform_peaks(num_samples: int = WAVEFORM_DEFAULT_SAMPLES) -> List[List[float]]:
    """Forme d'onde neutre utilisée quand le fichier n'est pas lu par le serveur."""
    return [[0.0] * num_samples, [0.0] * num_samples]
