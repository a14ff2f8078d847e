from .lorawan import LoRaWAN, SF_SENSITIVITY, EU868_CHANNELS, MAC_OVERHEAD_BYTES, airtime, device_address

__all__ = ["LoRaWAN", "SF_SENSITIVITY", "EU868_CHANNELS", "MAC_OVERHEAD_BYTES", "airtime", "device_address"]
