"""Config flow for the Charge Optimizer integration."""

from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol
from homeassistant.config_entries import (
    ConfigEntry,
    ConfigFlow,
    ConfigFlowResult,
    OptionsFlow,
)
from homeassistant.core import callback
from homeassistant.helpers.aiohttp_client import async_get_clientsession
from homeassistant.helpers.selector import (
    EntitySelector,
    EntitySelectorConfig,
    NumberSelector,
    NumberSelectorConfig,
    NumberSelectorMode,
    SelectSelector,
    SelectSelectorConfig,
    SelectSelectorMode,
    TextSelector,
    TextSelectorConfig,
    TextSelectorType,
)

from .const import (
    CONF_ACCESS_TOKEN,
    CONF_CHECK_INTERVAL,
    CONF_COST_SOURCE,
    CONF_ENABLE_ENTITY,
    CONF_GRANULARITY,
    CONF_LOG_INTERVAL,
    CONF_MINIMUM_CHARGING_TIME,
    CONF_OPTIMIZATION_TIME,
    CONF_STATE_ENTITY,
    COST_SOURCE_TIBBER,
    COST_SOURCES,
    DEFAULT_CHECK_INTERVAL,
    DEFAULT_GRANULARITY,
    DEFAULT_LOG_INTERVAL,
    DEFAULT_MINIMUM_CHARGING_TIME,
    DEFAULT_OPTIMIZATION_TIME,
    DOMAIN,
)
from .tibber_api import TibberApiClient, TibberApiError, TibberAuthError

_LOGGER = logging.getLogger(__name__)

STEP_USER_DATA_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_STATE_ENTITY): EntitySelector(
            EntitySelectorConfig(domain="sensor")
        ),
        vol.Required(CONF_ENABLE_ENTITY): EntitySelector(
            EntitySelectorConfig(domain="switch")
        ),
        vol.Required(CONF_COST_SOURCE, default=COST_SOURCE_TIBBER): SelectSelector(
            SelectSelectorConfig(
                options=COST_SOURCES,
                mode=SelectSelectorMode.DROPDOWN,
                translation_key=CONF_COST_SOURCE,
            )
        ),
    }
)

STEP_TIBBER_AUTH_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_ACCESS_TOKEN): TextSelector(
            TextSelectorConfig(type=TextSelectorType.PASSWORD)
        ),
    }
)


def _minutes_selector(minimum: int, maximum: int) -> NumberSelector:
    return NumberSelector(
        NumberSelectorConfig(
            min=minimum,
            max=maximum,
            step=1,
            unit_of_measurement="min",
            mode=NumberSelectorMode.BOX,
        )
    )


def _seconds_selector(minimum: int, maximum: int) -> NumberSelector:
    return NumberSelector(
        NumberSelectorConfig(
            min=minimum,
            max=maximum,
            step=1,
            unit_of_measurement="s",
            mode=NumberSelectorMode.BOX,
        )
    )


class ChargeOptimizerConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Charge Optimizer."""

    VERSION = 1

    def __init__(self) -> None:
        """Initialize the config flow."""
        self._data: dict[str, Any] = {}

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Handle the initial step: select the charger entities and cost source."""
        if user_input is not None:
            # One entry per charger
            await self.async_set_unique_id(user_input[CONF_STATE_ENTITY])
            self._abort_if_unique_id_configured()

            self._data = dict(user_input)
            if self._data[CONF_COST_SOURCE] == COST_SOURCE_TIBBER:
                return await self.async_step_tibber_auth()

            return self.async_create_entry(
                title=_entry_title(self._data[CONF_STATE_ENTITY]),
                data=self._data,
            )

        return self.async_show_form(
            step_id="user",
            data_schema=STEP_USER_DATA_SCHEMA,
        )

    async def async_step_tibber_auth(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Handle Tibber API token authentication."""
        errors: dict[str, str] = {}

        if user_input is not None:
            access_token = user_input[CONF_ACCESS_TOKEN]

            # Validate the token by querying the Tibber API
            session = async_get_clientsession(self.hass)
            client = TibberApiClient(session, access_token)

            try:
                viewer_name = await client.async_validate_token()
            except TibberAuthError:
                errors["base"] = "invalid_token"
            except TibberApiError:
                errors["base"] = "cannot_connect"
            except Exception:
                _LOGGER.exception("Unexpected error validating Tibber token")
                errors["base"] = "unknown"
            else:
                _LOGGER.debug("Tibber token valid for %s", viewer_name)
                return self.async_create_entry(
                    title=_entry_title(self._data[CONF_STATE_ENTITY]),
                    data={**self._data, CONF_ACCESS_TOKEN: access_token},
                )

        return self.async_show_form(
            step_id="tibber_auth",
            data_schema=STEP_TIBBER_AUTH_SCHEMA,
            errors=errors,
            description_placeholders={
                "tibber_token_url": "https://developer.tibber.com/settings/access-token"
            },
        )

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: ConfigEntry,  # noqa: ARG004
    ) -> ChargeOptimizerOptionsFlow:
        """Return the options flow handler."""
        return ChargeOptimizerOptionsFlow()


class ChargeOptimizerOptionsFlow(OptionsFlow):
    """Handle the timing options of a Charge Optimizer entry."""

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Manage the options."""
        errors: dict[str, str] = {}

        if user_input is not None:
            if (
                user_input[CONF_MINIMUM_CHARGING_TIME]
                > user_input[CONF_OPTIMIZATION_TIME]
            ):
                errors[CONF_MINIMUM_CHARGING_TIME] = "longer_than_optimization_time"
            else:
                return self.async_create_entry(
                    data={key: int(value) for key, value in user_input.items()}
                )

        options = self.config_entry.options
        schema = vol.Schema(
            {
                vol.Required(
                    CONF_MINIMUM_CHARGING_TIME,
                    default=options.get(
                        CONF_MINIMUM_CHARGING_TIME, DEFAULT_MINIMUM_CHARGING_TIME
                    ),
                ): _minutes_selector(0, 1440),
                vol.Required(
                    CONF_OPTIMIZATION_TIME,
                    default=options.get(
                        CONF_OPTIMIZATION_TIME, DEFAULT_OPTIMIZATION_TIME
                    ),
                ): _minutes_selector(15, 2880),
                vol.Required(
                    CONF_GRANULARITY,
                    default=options.get(CONF_GRANULARITY, DEFAULT_GRANULARITY),
                ): _minutes_selector(1, 60),
                vol.Required(
                    CONF_CHECK_INTERVAL,
                    default=options.get(CONF_CHECK_INTERVAL, DEFAULT_CHECK_INTERVAL),
                ): _seconds_selector(1, 300),
                vol.Required(
                    CONF_LOG_INTERVAL,
                    default=options.get(CONF_LOG_INTERVAL, DEFAULT_LOG_INTERVAL),
                ): _seconds_selector(10, 3600),
            }
        )

        return self.async_show_form(step_id="init", data_schema=schema, errors=errors)


def _entry_title(state_entity: str) -> str:
    """Build the entry title from the charger state entity id."""
    return f"Charge Optimizer ({state_entity.split('.', 1)[-1]})"

