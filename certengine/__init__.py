"""
Движок жизненного цикла сертификатов персонала аэропортов.
"""

from .service import CertificateService, build_certificate_service, get_certificate_service
from .models import Certificate, CertificateRequest, CertificateView, ProfileBundle
from .generator import CertificateNumberGenerator
from .validators import DataValidator, UploadValidator
from .exceptions import CertificateError

__version__ = "1.0.0"

__all__ = [
    'CertificateService',
    'build_certificate_service',
    'get_certificate_service',
    'Certificate',
    'CertificateRequest',
    'CertificateView',
    'ProfileBundle',
    'CertificateNumberGenerator',
    'DataValidator',
    'UploadValidator',
    'CertificateError',
]
