from modulecms.extensions import db


def compact_order(query, model, order_field="order_index", start=0):
    """
    Re-assigns sequential order values (start..N) for a scoped query.
    """
    items = query.order_by(getattr(model, order_field).asc(), model.created_at.asc()).all()

    for index, item in enumerate(items, start=start):
        setattr(item, order_field, index)

    db.session.flush()
    return items
