"""Core module - Pipeline de mensajes y orquestación.

Estructura:
- classification/ → Topic → (device_id, categoría)
- decoding/       → Variantes DeviceData y frames de imagen
- pipeline/       → Dispatcher por categoría
- transport/      → Cliente MQTT y handler de mensajes
- monitoring/     → Estadísticas
- context.py      → Canales y parada compartidos
- orchestrator.py → Loop principal y parada coordinada
"""
