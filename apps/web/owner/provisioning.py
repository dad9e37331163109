"""
Restaurant provisioning - wait for a new owner's restaurant row to become visible.

Right after sign-up the restaurant row may not be readable yet. The
provisioner keeps looking for a bounded number of attempts before
sending the owner to the "no restaurant linked" recovery screen:

    checking -> found
             -> not_found_retry -> (2s) -> checking     while attempts < 3
             -> not_found_final                         attempts exhausted
             -> error                                   any other failure
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from pydantic import ValidationError as PydanticValidationError

from delivery_schemas import Owner, Restaurant

from apps.web.core.lifecycle import Sleep, ViewScope
from apps.web.store.base import StoreClient
from apps.web.store.exceptions import NotFoundError, StoreError

logger = logging.getLogger(__name__)

OnFound = Callable[[Restaurant], Awaitable[None]]


class ProvisioningState(str, Enum):
    """Where the restaurant lookup stands."""

    IDLE = "idle"
    CHECKING = "checking"
    FOUND = "found"
    NOT_FOUND_RETRY = "not_found_retry"
    NOT_FOUND_FINAL = "not_found_final"
    ERROR = "error"


class RestaurantProvisioner:
    """
    Retry state machine for the signed-in owner's restaurant lookup.

    ``start`` begins a fresh run for an identity (attempts reset to zero),
    cancelling any run still in flight. ``cancel`` stops the run and its
    pending retry timer; a cancelled run never writes state again.
    """

    MAX_RETRIES = 3
    RETRY_DELAY_SECONDS = 2.0

    def __init__(
        self,
        store: StoreClient,
        on_found: OnFound | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._store = store
        self._on_found = on_found
        self._sleep = sleep
        self._scope = ViewScope("provisioning")
        self._scope.close()
        self._task: asyncio.Task[None] | None = None

        self.state = ProvisioningState.IDLE
        self.attempts = 0
        self.owner: Owner | None = None
        self.restaurant: Restaurant | None = None
        self.error: str | None = None

    @property
    def settled(self) -> bool:
        """True once the lookup reached a terminal state."""
        return self.state in (
            ProvisioningState.FOUND,
            ProvisioningState.NOT_FOUND_FINAL,
            ProvisioningState.ERROR,
        )

    @property
    def needs_recovery(self) -> bool:
        """True when the owner should see the "no restaurant linked" screen."""
        return self.state in (ProvisioningState.NOT_FOUND_FINAL, ProvisioningState.ERROR)

    def start(self, user_id: str) -> asyncio.Task[None]:
        """Begin looking up ``user_id``'s restaurant from attempt zero."""
        self.cancel()
        self._scope = ViewScope(f"provisioning:{user_id}")
        self.attempts = 0
        self.owner = None
        self.restaurant = None
        self.error = None
        self._task = self._scope.spawn(self._run(user_id, self._scope))
        return self._task

    async def wait(self) -> None:
        """Wait until the current run has settled or been cancelled."""
        if self._task is not None:
            await asyncio.wait({self._task})

    def cancel(self) -> None:
        self._scope.close()

    def reset(self) -> None:
        """Forget everything, e.g. after sign-out."""
        self.cancel()
        self.state = ProvisioningState.IDLE
        self.attempts = 0
        self.owner = None
        self.restaurant = None
        self.error = None

    async def _load_owner(self, user_id: str) -> Owner | None:
        try:
            row = await self._store.select_one("owners", eq={"id": user_id})
        except NotFoundError:
            return None
        return Owner.model_validate(row)

    async def _run(self, user_id: str, scope: ViewScope) -> None:
        while True:
            self.state = ProvisioningState.CHECKING
            try:
                owner = await self._load_owner(user_id)
                if not scope.alive:
                    return
                self.owner = owner
                row = await self._store.select_one("restaurants", eq={"owner_id": user_id})
                restaurant = Restaurant.model_validate(row)
            except NotFoundError:
                if not scope.alive:
                    return
                if self.attempts < self.MAX_RETRIES:
                    self.attempts += 1
                    self.state = ProvisioningState.NOT_FOUND_RETRY
                    logger.info(
                        "Restaurant not found for owner %s, retrying (attempt %d/%d)",
                        user_id,
                        self.attempts,
                        self.MAX_RETRIES,
                    )
                    await self._sleep(self.RETRY_DELAY_SECONDS)
                    if not scope.alive:
                        return
                    continue
                logger.warning("No restaurant linked to owner %s", user_id)
                self.state = ProvisioningState.NOT_FOUND_FINAL
                return
            except (StoreError, PydanticValidationError) as e:
                if not scope.alive:
                    return
                logger.error("Error fetching restaurant for owner %s: %s", user_id, e)
                self.error = str(e)
                self.state = ProvisioningState.ERROR
                return

            if not scope.alive:
                return
            self.restaurant = restaurant
            self.state = ProvisioningState.FOUND
            logger.info("Restaurant %s loaded for owner %s", restaurant.id, user_id)
            if self._on_found is not None:
                await self._on_found(restaurant)
            return
