"""Chat, gateway and mock backend services."""
