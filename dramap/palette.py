import colorsys # to convert from hls to rgb

def hsl2rgb(h, s, l, a):
    """Convert hue (0-360), saturation, lightness and alpha (0-100) into a
    '#RRGGBBAA' string, the format matplotlib takes as a color."""
    try:
        h,s,l,a = float(h),float(s),float(l),float(a)
        if (not (0 <= h <= 360)) or \
           (not (0 <= s <= 100)) or \
           (not (0 <= l <= 100)) or \
           (not (0 <= a <= 100)):
            raise ValueError
    except ValueError:
        raise ValueError('hsl2rgb(): Incorrect value given to either h, s, '
                         f'l, or a: ({h}, {s}, {l}, {a})') from None
    h,s,l,a = h/360.0, s/100.0, l/100.0, a/100.0
    r,g,b = colorsys.hls_to_rgb(h, l, s)
    r,g,b,a = round(r*255), round(g*255), round(b*255), round(a*255)
    return f'#{r:02X}{g:02X}{b:02X}{a:02X}'


class Palette:
    """
    One color per VM, with hues evenly spread around the wheel starting at
    h_off, plus the two fixed colors of the element grid:

        conflict : element used by more than one VM
        unused   : element used by no VM

    Example:
        p = Palette(3)
        p[0], p[1], p[2]   # three pastel colors, 120 degrees apart
        p[3] == p[0]       # indices wrap around
    """
    conflict = hsl2rgb(0, 0, 39, 70)
    unused = hsl2rgb(0, 0, 90, 70)

    def __init__(self, count=8, sat=85, lig=75, alp=70, h_off=5):
        if count < 1:
            raise ValueError('Palette color count cannot be less than 1.')
        step = 360/count
        self.hues = [(round(i*step)+h_off)%360 for i in range(count)]
        self.col = [hsl2rgb(h, sat, lig, alp) for h in self.hues]
        return

    def __str__(self):
        ret = ''
        ret += f'conflict : {self.conflict}\n'
        ret += f'unused   : {self.unused}\n'
        ret += f'col      : {self.col}'
        return ret

    def __getitem__(self, idx):
        return self.col[idx % len(self.col)]

    def __len__(self):
        return len(self.col)
