"""
Pipeline de sincronización one-way: ArangoDB -> base relacional.

Este paquete está diseñado para ejecutarse como job (cron / task scheduler).

Objetivos de diseño:
- Idempotencia: se puede ejecutar N veces sin duplicar filas (UPSERT por clave).
- Full scan por corrida: no es CDC; cada corrida relee las colecciones completas.
- Joins declarativos: igualdad directa o recorrido de cadenas de aristas.
- Tipos explícitos: los valores se convierten al tipo declarado de cada columna.
- Transacción por unidad: un error deja la tabla de esa unidad como estaba.
"""
