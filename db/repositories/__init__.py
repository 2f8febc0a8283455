"""Repository layer for the participant record store.

Provides query and write methods for:
- participants: get_by_id, get_by_private_id, ids_by_field_value, get_many,
                ordered_ids, max_id, private_id_exists, insert, update
- fields: list_fields, upsert
"""
