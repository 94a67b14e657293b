MATERIAL_TYPES = [
    'Plastic - PET',
    'Plastic - HDPE',
    'Plastic - LDPE',
    'Plastic - PP',
    'Plastic - Mixed',
    'Paper - White',
    'Paper - Newspaper',
    'Paper - Cardboard',
    'Paper - Mixed',
    'Metal - Aluminum',
    'Metal - Copper',
    'Metal - Iron',
    'Metal - Mixed',
    'Glass - Clear',
    'Glass - Green',
    'Glass - Brown',
    'Glass - Mixed',
    'E-waste',
    'Organic Waste',
    'Textile Waste',
    'Other',
]

DISTRICTS = [
    'Alappuzha',
    'Ernakulam',
    'Idukki',
    'Kannur',
    'Kasaragod',
    'Kollam',
    'Kottayam',
    'Kozhikode',
    'Malappuram',
    'Palakkad',
    'Pathanamthitta',
    'Thiruvananthapuram',
    'Thrissur',
    'Wayanad',
]

EXPENSE_CATEGORIES = [
    'Vehicle Fuel',
    'Vehicle Maintenance',
    'Staff Salary',
    'Rent',
    'Electricity',
    'Water',
    'Internet & Phone',
    'Equipment',
    'Machinery Maintenance',
    'Transportation',
    'Packaging Materials',
    'Marketing',
    'Processing Costs',
    'Administrative',
    'Insurance',
    'Taxes',
    'Waste Disposal Fees',
    'Other',
]

RATE_TYPES = {
    'material_purchase': 'Material Purchase',
    'labor_loading': 'Labor - Loading/Unloading',
    'labor_segregation': 'Labor - Segregation',
    'labor_bailing': 'Labor - Bailing',
    'material_sale': 'Material Sale',
    'commission': 'Commission',
}

UNITS = ['kg', 'tonne', 'bag', 'piece']


def catalog() -> dict:
    return {
        'materials': MATERIAL_TYPES,
        'districts': DISTRICTS,
        'expense_categories': EXPENSE_CATEGORIES,
        'rate_types': [{'value': key, 'label': label} for key, label in RATE_TYPES.items()],
        'units': UNITS,
    }
