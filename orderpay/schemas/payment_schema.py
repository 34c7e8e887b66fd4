from decimal import Decimal, InvalidOperation

from marshmallow import Schema, fields, validates, ValidationError, EXCLUDE


class OrderReference(fields.Field):
    """Order id sent either as a string or as an integer"""

    def _deserialize(self, value, attr, data, **kwargs):
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            raise ValidationError('Order id must be a string or an integer')
        value = str(value).strip()
        if not value:
            raise ValidationError('Order id must not be empty')
        return value


class AmountMixin:
    # Decimal places the gateway accepts; amounts are rejected, never rounded
    amount_places = 2

    @validates('amount')
    def validate_amount(self, value, **kwargs):
        if value <= 0:
            raise ValidationError('Amount must be greater than 0')
        try:
            exact = value == value.quantize(Decimal(1).scaleb(-self.amount_places))
        except InvalidOperation:
            raise ValidationError('Amount is out of range')
        if not exact:
            if self.amount_places == 0:
                raise ValidationError('Amount must be a whole number')
            raise ValidationError(f'Amount must have at most {self.amount_places} decimal places')


class MPesaPaymentSchema(AmountMixin, Schema):
    """STK Push initiation schema"""

    # Daraja only charges whole shillings
    amount_places = 0

    class Meta:
        unknown = EXCLUDE

    order_id = OrderReference(required=True)
    phone = fields.Str(required=True)
    amount = fields.Decimal(required=True)
    description = fields.Str(required=False, allow_none=True)

    @validates('phone')
    def validate_phone(self, value, **kwargs):
        if not value.strip():
            raise ValidationError('Phone must not be empty')


class PesaPalPaymentSchema(AmountMixin, Schema):
    """PesaPal order initiation schema"""

    class Meta:
        unknown = EXCLUDE

    order_id = OrderReference(required=True)
    amount = fields.Decimal(required=True)
    email = fields.Str(required=False, allow_none=True)
    phone = fields.Str(required=False, allow_none=True)
    first_name = fields.Str(required=False, allow_none=True)
    last_name = fields.Str(required=False, allow_none=True)
    description = fields.Str(required=False, allow_none=True)
    callback_url = fields.Url(required=False, allow_none=True, require_tld=False)


class PesaPalCheckoutSchema(AmountMixin, Schema):
    """Create-order-and-redirect schema"""

    class Meta:
        unknown = EXCLUDE

    amount = fields.Decimal(required=True)
    name = fields.Str(required=False, allow_none=True)
    email = fields.Email(required=False, allow_none=True)
    phone = fields.Str(required=False, allow_none=True)
    description = fields.Str(required=False, allow_none=True)
    callback_url = fields.Url(required=False, allow_none=True, require_tld=False)


class OrderSchema(Schema):
    """Order payment view returned by the status endpoint"""
    id = fields.Raw(dump_only=True)
    status = fields.Str(dump_only=True)
    payment_status = fields.Str(dump_only=True)
    payment_method = fields.Str(dump_only=True)
    total = fields.Raw(dump_only=True)
    mpesa_checkout_id = fields.Str(dump_only=True)
    mpesa_merchant_request_id = fields.Str(dump_only=True)
    mpesa_receipt = fields.Str(dump_only=True)
    mpesa_amount = fields.Raw(dump_only=True)
    mpesa_transaction_date = fields.Str(dump_only=True)
    pesapal_tracking_id = fields.Str(dump_only=True)
    pesapal_transaction_id = fields.Str(dump_only=True)
    created_at = fields.Str(dump_only=True)
