# ==============================================================================
# SERVICIO DE CIFRADO HÍBRIDO
# ==============================================================================
# Sobre de cifrado para datos sensibles:
#   1. Llave AES-256 aleatoria por mensaje
#   2. Datos cifrados con AES-256-GCM (IV de 16 bytes, tag de 16 bytes,
#      AAD fijo "sportsline-api")
#   3. Llave AES envuelta con RSA-OAEP (MGF1-SHA256, SHA-256)
#
# Todos los campos del sobre viajan en hexadecimal. Cualquier alteración
# del texto cifrado, la llave envuelta, el IV o el tag produce
# DecryptionError, nunca datos corruptos.
# ==============================================================================

import hashlib
import json
import logging
import os
import secrets
from typing import Any, Dict, Optional, Tuple, Union

from cryptography.exceptions import InvalidTag, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from sportsline.config import (
    AES_IV_LENGTH,
    AES_KEY_LENGTH,
    AES_TAG_LENGTH,
    ENCRYPTION_AAD,
    RSA_KEY_SIZE,
    RSA_PUBLIC_EXPONENT,
    SECURE_RANDOM_MAX,
    SECURE_RANDOM_MIN,
)
from sportsline.errors import DecryptionError, ValidationError
from sportsline.models import EncryptedEnvelope
from sportsline.services.base_service import BaseService

logger = logging.getLogger(__name__)

# Campos de usuario que se consideran sensibles
SENSITIVE_USER_FIELDS = ('password', 'email', 'document')

EnvelopeLike = Union[EncryptedEnvelope, Dict[str, Any]]


def _oaep() -> padding.OAEP:
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA256()),
        algorithm=hashes.SHA256(),
        label=None
    )


def _to_bytes(data: Union[str, bytes]) -> bytes:
    return data.encode('utf-8') if isinstance(data, str) else data


def _from_hex(value: str, field_name: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except (ValueError, TypeError):
        raise DecryptionError(f'Sobre corrupto: {field_name} no es hexadecimal válido')


class HybridEncryptionService(BaseService):
    """
    Cifrado híbrido AES-256-GCM + RSA-OAEP.

    Las primitivas (AES, envoltura RSA, hash) son síncronas. encrypt() y
    decrypt() corren con el tiempo máximo del servicio.
    """

    # =========================================================================
    # PRIMITIVAS
    # =========================================================================

    def generate_rsa_key_pair(self) -> Tuple[str, str]:
        """
        Genera un par de llaves RSA 2048.

        Returns:
            (public_pem SubjectPublicKeyInfo, private_pem PKCS#8)
        """
        private_key = rsa.generate_private_key(
            public_exponent=RSA_PUBLIC_EXPONENT,
            key_size=RSA_KEY_SIZE
        )
        private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption()
        ).decode('ascii')
        public_pem = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo
        ).decode('ascii')
        logger.info('Par de llaves RSA generado')
        return public_pem, private_pem

    def generate_aes_key(self) -> bytes:
        """32 bytes aleatorios criptográficamente seguros."""
        return os.urandom(AES_KEY_LENGTH)

    def encrypt_with_aes(self, plaintext: Union[str, bytes], key: bytes) -> Tuple[bytes, bytes, bytes]:
        """
        Cifra con AES-256-GCM usando un IV nuevo.

        Returns:
            (ciphertext, iv, tag)
        """
        iv = os.urandom(AES_IV_LENGTH)
        sealed = AESGCM(key).encrypt(iv, _to_bytes(plaintext), ENCRYPTION_AAD)
        # AESGCM devuelve ciphertext || tag
        return sealed[:-AES_TAG_LENGTH], iv, sealed[-AES_TAG_LENGTH:]

    def decrypt_with_aes(self, ciphertext: bytes, key: bytes, iv: bytes, tag: bytes) -> bytes:
        """
        Descifra con AES-256-GCM verificando el tag.

        Raises:
            DecryptionError: Tag inválido, llave o IV de tamaño incorrecto
        """
        if len(tag) != AES_TAG_LENGTH:
            raise DecryptionError('Tag de autenticación inválido')
        if len(iv) != AES_IV_LENGTH:
            raise DecryptionError('IV inválido')
        try:
            return AESGCM(key).decrypt(iv, ciphertext + tag, ENCRYPTION_AAD)
        except InvalidTag:
            raise DecryptionError('Los datos cifrados fueron alterados o la llave es incorrecta')
        except ValueError as e:
            raise DecryptionError(f'Llave AES inválida: {e}')

    def wrap_key(self, key: bytes, public_pem: str) -> bytes:
        """
        Envuelve la llave AES con la llave pública RSA (OAEP).

        Raises:
            ValidationError: Si la llave pública no es un PEM RSA válido
        """
        try:
            public_key = serialization.load_pem_public_key(_to_bytes(public_pem))
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise ValidationError(f'Llave pública inválida: {e}')
        if not isinstance(public_key, rsa.RSAPublicKey):
            raise ValidationError('La llave pública debe ser RSA')
        return public_key.encrypt(key, _oaep())

    def unwrap_key(self, wrapped: bytes, private_pem: str) -> bytes:
        """
        Recupera la llave AES con la llave privada RSA.

        Raises:
            DecryptionError: Llave privada incorrecta o llave envuelta corrupta
        """
        try:
            private_key = serialization.load_pem_private_key(_to_bytes(private_pem), password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise DecryptionError(f'Llave privada inválida: {e}')
        if not isinstance(private_key, rsa.RSAPrivateKey):
            raise DecryptionError('La llave privada debe ser RSA')
        try:
            return private_key.decrypt(wrapped, _oaep())
        except ValueError:
            raise DecryptionError('No se pudo recuperar la llave: llave privada incorrecta o sobre corrupto')

    # =========================================================================
    # SOBRE HÍBRIDO
    # =========================================================================

    def _encrypt(self, payload: Any, public_pem: str) -> EncryptedEnvelope:
        if isinstance(payload, str):
            text = payload
        else:
            try:
                text = json.dumps(payload, ensure_ascii=False)
            except (TypeError, ValueError) as e:
                raise ValidationError(f'El payload no es serializable a JSON: {e}')

        key = self.generate_aes_key()
        ciphertext, iv, tag = self.encrypt_with_aes(text, key)
        wrapped = self.wrap_key(key, public_pem)
        return EncryptedEnvelope(
            encrypted_data=ciphertext.hex(),
            encrypted_key=wrapped.hex(),
            iv=iv.hex(),
            tag=tag.hex()
        )

    def _decrypt(self, envelope: EnvelopeLike, private_pem: str) -> str:
        if isinstance(envelope, dict):
            envelope = EncryptedEnvelope.from_dict(envelope)
        if not isinstance(envelope, EncryptedEnvelope):
            raise DecryptionError('Sobre de cifrado inválido')

        wrapped = _from_hex(envelope.encrypted_key, 'encryptedKey')
        ciphertext = _from_hex(envelope.encrypted_data, 'encryptedData')
        iv = _from_hex(envelope.iv, 'iv')
        tag = _from_hex(envelope.tag, 'tag')

        key = self.unwrap_key(wrapped, private_pem)
        plaintext = self.decrypt_with_aes(ciphertext, key, iv, tag)
        try:
            return plaintext.decode('utf-8')
        except UnicodeDecodeError:
            raise DecryptionError('El contenido descifrado no es texto UTF-8')

    def encrypt(self, payload: Any, public_pem: str) -> EncryptedEnvelope:
        """
        Cifra un payload en un sobre híbrido.

        Args:
            payload: Texto, o cualquier valor serializable a JSON
            public_pem: Llave pública RSA del destinatario

        Returns:
            EncryptedEnvelope con campos en hexadecimal

        Raises:
            ValidationError: Llave pública inválida o payload no serializable
                (Decimal y dataclasses deben convertirse antes)
            Unavailable: Tiempo máximo excedido
        """
        envelope = self._run_with_timeout('Cifrado híbrido', self._encrypt, payload, public_pem)
        logger.debug('Datos cifrados con cifrado híbrido')
        return envelope

    def decrypt(self, envelope: EnvelopeLike, private_pem: str) -> str:
        """
        Abre un sobre híbrido.

        Args:
            envelope: EncryptedEnvelope o dict con encryptedData/encryptedKey/iv/tag
            private_pem: Llave privada RSA

        Returns:
            Texto plano original

        Raises:
            DecryptionError: Llave incorrecta, sobre corrupto o alterado
            Unavailable: Tiempo máximo excedido
        """
        try:
            return self._run_with_timeout('Descifrado híbrido', self._decrypt, envelope, private_pem)
        except DecryptionError as e:
            logger.warning('Fallo al descifrar sobre: %s', e.message)
            raise

    def decrypt_json(self, envelope: EnvelopeLike, private_pem: str) -> Any:
        """
        Abre un sobre y deserializa su contenido JSON.

        Raises:
            DecryptionError: Si el sobre no abre o el contenido no es JSON
        """
        text = self.decrypt(envelope, private_pem)
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            raise DecryptionError('El contenido descifrado no es JSON válido')

    # =========================================================================
    # UTILIDADES
    # =========================================================================

    def hash_data(self, data: str) -> str:
        """
        SHA-256 en hexadecimal.

        Raises:
            ValidationError: Si data no es texto
        """
        if not isinstance(data, str):
            raise ValidationError('Solo se puede hashear texto')
        return hashlib.sha256(data.encode('utf-8')).hexdigest()

    def generate_secure_random(self, length: int = 32) -> str:
        """
        Cadena aleatoria segura: hex de `length` bytes (2*length caracteres).

        Raises:
            ValidationError: Si length está fuera de [8, 256]
        """
        if (
            isinstance(length, bool)
            or not isinstance(length, int)
            or not SECURE_RANDOM_MIN <= length <= SECURE_RANDOM_MAX
        ):
            raise ValidationError(
                f'La longitud debe estar entre {SECURE_RANDOM_MIN} y {SECURE_RANDOM_MAX}'
            )
        return secrets.token_hex(length)

    def encrypt_user_data(self, user_data: Dict[str, Any], public_pem: str) -> EncryptedEnvelope:
        """
        Cifra solo los campos sensibles de un usuario (password, email, document).

        Raises:
            ValidationError: Si no hay ningún campo sensible
        """
        sensitive = {
            field: user_data[field]
            for field in SENSITIVE_USER_FIELDS
            if user_data.get(field)
        }
        if not sensitive:
            raise ValidationError('No hay datos sensibles para cifrar')
        return self.encrypt(sensitive, public_pem)

    def decrypt_user_data(self, envelope: EnvelopeLike, private_pem: str) -> Dict[str, Any]:
        data = self.decrypt_json(envelope, private_pem)
        if not isinstance(data, dict):
            raise DecryptionError('Los datos de usuario descifrados no son un objeto')
        return data


def load_or_generate_key_pair(
    service: HybridEncryptionService,
    public_pem: Optional[str],
    private_pem: Optional[str]
) -> Tuple[str, str]:
    """
    Par de llaves de la aplicación: el configurado, o uno efímero generado
    al arrancar (los datos cifrados no sobreviven a un reinicio).
    """
    if public_pem and private_pem:
        # Las variables de entorno suelen traer los saltos de línea escapados
        return public_pem.replace("\\n", "\n"), private_pem.replace("\\n", "\n")
    logger.warning(
        'RSA_PUBLIC_KEY/RSA_PRIVATE_KEY no configuradas: usando un par de llaves efímero'
    )
    return service.generate_rsa_key_pair()
