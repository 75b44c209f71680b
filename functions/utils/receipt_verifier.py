# functions/utils/receipt_verifier.py
"""
Server-side receipt verification for the App Store and Google Play.

Apple receipts go through the verifyReceipt endpoint (production first,
sandbox on status 21007). Google Play verification is a placeholder until the
Play Developer API integration lands.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence

import requests

from config import config
from utils import (
    APPLE_STATUS_OK,
    APPLE_STATUS_SANDBOX_RECEIPT,
    PLATFORM_ANDROID,
    PLATFORM_IOS,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a receipt verification."""

    valid: bool
    purchase: Optional[Dict[str, Any]] = None
    environment: Optional[str] = None
    status: Optional[int] = None

    @classmethod
    def invalid(cls, status: Optional[int] = None) -> "VerificationResult":
        return cls(valid=False, status=status)


class ReceiptVerifier:
    """Base class for platform receipt verifiers."""

    platform: str = ""

    def verify(self, receipt: str, product_id: str) -> VerificationResult:
        raise NotImplementedError


class AppleReceiptVerifier(ReceiptVerifier):
    """App Store receipt verification via verifyReceipt."""

    platform = PLATFORM_IOS

    def __init__(
        self,
        shared_secret: Optional[str] = None,
        production_url: Optional[str] = None,
        sandbox_url: Optional[str] = None,
        timeout: Optional[float] = None,
        local_environments: Optional[Sequence[str]] = None,
        session: Optional[requests.Session] = None,
    ):
        self.shared_secret = config.APPLE_SHARED_SECRET if shared_secret is None else shared_secret
        self.production_url = production_url or config.APPLE_PRODUCTION_URL
        self.sandbox_url = sandbox_url or config.APPLE_SANDBOX_URL
        self.timeout = timeout or config.APPLE_VERIFY_TIMEOUT
        self.local_environments = tuple(
            config.LOCAL_RECEIPT_ENVIRONMENTS if local_environments is None else local_environments
        )
        self._session = session

    @property
    def session(self) -> requests.Session:
        """Lazy-load HTTP session."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def _verify_local(self, receipt: str, product_id: str) -> Optional[VerificationResult]:
        """
        Accept StoreKit testing receipts (e.g. Xcode) without a network call.

        These are JSON objects carrying an ``environment`` marker and the
        ``productId`` that was bought. Anything else returns None so the
        receipt goes to Apple.
        """
        try:
            parsed = json.loads(receipt)
        except (TypeError, ValueError):
            logger.debug("Receipt is not JSON, proceeding with Apple verification")
            return None

        if not isinstance(parsed, dict):
            return None

        environment = parsed.get("environment")
        if environment in self.local_environments and parsed.get("productId") == product_id:
            logger.info(f"✓ {environment} testing receipt verified for product {product_id}")
            return VerificationResult(
                valid=True,
                purchase={
                    "product_id": product_id,
                    "transaction_id": parsed.get("transactionId"),
                    "purchase_date": parsed.get("purchaseDate"),
                },
                environment=environment,
                status=APPLE_STATUS_OK,
            )
        return None

    def _post(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = self.session.post(url, json=payload, timeout=self.timeout)
        response.raise_for_status()
        body = response.json()
        if not isinstance(body, dict):
            raise ValueError("verifyReceipt returned a non-object body")
        return body

    @staticmethod
    def _find_purchase(body: Mapping[str, Any], product_id: str) -> Optional[Dict[str, Any]]:
        receipt = body.get("receipt")
        if not isinstance(receipt, dict):
            return None
        in_app = receipt.get("in_app")
        if not isinstance(in_app, list):
            return None
        for purchase in in_app:
            if isinstance(purchase, dict) and purchase.get("product_id") == product_id:
                return purchase
        return None

    def verify(self, receipt: str, product_id: str) -> VerificationResult:
        if not receipt or not product_id:
            return VerificationResult.invalid()

        local = self._verify_local(receipt, product_id)
        if local is not None:
            return local

        payload = {
            "receipt-data": receipt,
            "password": self.shared_secret,
            "exclude-old-transactions": True,
        }

        try:
            environment = "Production"
            body = self._post(self.production_url, payload)

            if body.get("status") == APPLE_STATUS_SANDBOX_RECEIPT:
                logger.info("Sandbox receipt sent to production, retrying against sandbox")
                environment = "Sandbox"
                body = self._post(self.sandbox_url, payload)

        except (requests.RequestException, ValueError) as e:
            logger.error(f"Apple receipt verification error: {str(e)}")
            return VerificationResult.invalid()

        status = body.get("status")
        if status == APPLE_STATUS_OK:
            purchase = self._find_purchase(body, product_id)
            if purchase is not None:
                logger.info(f"✓ Apple receipt verified for product {product_id} ({environment})")
                return VerificationResult(
                    valid=True,
                    purchase=dict(purchase),
                    environment=environment,
                    status=status,
                )
            logger.warning(f"✗ Apple receipt valid but product {product_id} not in purchase list")
            return VerificationResult.invalid(status=status)

        logger.warning(f"✗ Apple receipt verification failed. Status: {status}")
        return VerificationResult.invalid(status=status if isinstance(status, int) else None)


class GooglePlayReceiptVerifier(ReceiptVerifier):
    """
    PLACEHOLDER - not production-ready.

    Accepts any receipt longer than ``min_length`` paired with a non-empty
    product id. A real implementation must call the Play Developer API
    (purchases.products.get) and check purchase state, consumption state,
    package name and product id.
    """

    platform = PLATFORM_ANDROID

    def __init__(self, min_length: Optional[int] = None):
        self.min_length = config.ANDROID_MIN_RECEIPT_LENGTH if min_length is None else min_length

    def verify(self, receipt: str, product_id: str) -> VerificationResult:
        logger.warning(f"Google Play verification not implemented, using basic checks for {product_id}")

        if isinstance(receipt, str) and len(receipt) > self.min_length and product_id:
            logger.info(f"Google Play receipt basic validation passed for {product_id}")
            return VerificationResult(valid=True, environment="Unverified")

        return VerificationResult.invalid()


def build_verifiers() -> Dict[str, ReceiptVerifier]:
    """Platform -> verifier mapping used by verify_purchase."""
    return {
        PLATFORM_IOS: AppleReceiptVerifier(),
        PLATFORM_ANDROID: GooglePlayReceiptVerifier(),
    }
