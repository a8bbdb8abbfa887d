"""Customer client for an MQTT-based pizzeria.

The pizzeria service lives behind an MQTT broker (e.g. Mosquitto). This
package covers the customer side:
- requesting the menu broadcast
- placing an order on a per-order topic
- following the order status until delivery or cancellation

Entry points are the `pizzeria-client` CLI (`python -m pizzeria_client.app`)
and the Tkinter GUI (`pizzeria-client gui`).
"""
